import yaml, json, os, logging, datetime as dt, typing as t
from dataclasses import dataclass
from decimal import Decimal
from functools import partial
from pathlib import Path

from ..filters import FieldValueKind, Operator, as_operator
from ..validation import (
    KIND_OPERATORS,
    VALIDATORS,
    ValidationResult,
    validate_enumeration_value,
)

FIELDS_PATH = Path(os.getenv("FIELDS_FILE", "config/fields.yaml"))

log = logging.getLogger("filters")

_KIND_ALIASES: dict[str, FieldValueKind] = {
    "string": FieldValueKind.STRING,
    "text": FieldValueKind.STRING,
    "number": FieldValueKind.NUMBER,
    "date": FieldValueKind.DATE,
    "datetime": FieldValueKind.DATE,
    "boolean": FieldValueKind.BOOLEAN,
    "currency": FieldValueKind.CURRENCY,
    "select": FieldValueKind.ENUMERATION,
    "enumeration": FieldValueKind.ENUMERATION,
}


@dataclass(frozen=True)
class EnumOption:
    label: str
    value: t.Any


@dataclass(frozen=True)
class FieldTypeDefinition:
    kind: FieldValueKind
    allowed_operators: frozenset
    validate: t.Callable[[t.Any, Operator], ValidationResult]
    options: tuple = ()


class FieldTypeRegistry(t.Protocol):
    def lookup(self, field_name: str) -> t.Optional[FieldTypeDefinition]: ...


def as_kind(kind: t.Union[str, FieldValueKind]) -> FieldValueKind:
    if isinstance(kind, FieldValueKind):
        return kind
    found = _KIND_ALIASES.get(str(kind).lower())
    if found is None:
        raise ValueError(f"Unknown field type: {kind!r}")
    return found


def _as_option(o: t.Any) -> EnumOption:
    if isinstance(o, EnumOption):
        return o
    if isinstance(o, dict):
        if "value" not in o:
            raise ValueError(f"Option without a value: {o}")
        return EnumOption(label=str(o.get("label", o["value"])), value=o["value"])
    return EnumOption(label=str(o), value=o)


def default_definition(
    kind: t.Union[str, FieldValueKind],
    *,
    options: t.Optional[t.Iterable[t.Any]] = None,
    allowed_operators: t.Optional[t.Iterable[t.Union[str, Operator]]] = None,
) -> FieldTypeDefinition:
    """
    Build the standard definition for a value kind.

    `allowed_operators` narrows the field below what the kind supports;
    omitted, the field allows every operator its kind supports.
    """
    kind = as_kind(kind)
    opts = tuple(_as_option(o) for o in options or ())
    if allowed_operators is None:
        allowed = KIND_OPERATORS[kind]
    else:
        allowed = frozenset(as_operator(o) for o in allowed_operators)
        logical = sorted(o.value for o in allowed if o.is_logical)
        if logical:
            raise ValueError(f"Logical operators cannot be allowed on a field: {logical}")
    if kind is FieldValueKind.ENUMERATION:
        validator = partial(validate_enumeration_value, options=opts)
    else:
        validator = VALIDATORS[kind]
    return FieldTypeDefinition(kind=kind, allowed_operators=allowed, validate=validator, options=opts)


# Used for fields the registry does not know.
FALLBACK_DEFINITION = default_definition(FieldValueKind.STRING)


def _infer_kind(value: t.Any) -> FieldValueKind:
    if isinstance(value, bool):
        return FieldValueKind.BOOLEAN
    if isinstance(value, (int, float, Decimal)):
        return FieldValueKind.NUMBER
    if isinstance(value, (dt.date, dt.datetime)):
        return FieldValueKind.DATE
    if isinstance(value, dict) and (
        value.keys() >= {"value", "currency"} or value.keys() >= {"amount", "currencyCode"}
    ):
        return FieldValueKind.CURRENCY
    return FieldValueKind.STRING


class Registry:
    def __init__(self, fields: t.Optional[t.Mapping[str, FieldTypeDefinition]] = None):
        self.fields: dict[str, FieldTypeDefinition] = dict(fields or {})

    def lookup(self, field_name: str) -> t.Optional[FieldTypeDefinition]:
        return self.fields.get(field_name)

    def register(self, field_name: str, definition: FieldTypeDefinition) -> None:
        self.fields[field_name] = definition

    def __contains__(self, field_name: object) -> bool:
        return field_name in self.fields

    def __len__(self) -> int:
        return len(self.fields)

    def load_fields(self, path: t.Optional[Path] = None) -> None:
        path = Path(path) if path is not None else FIELDS_PATH
        if not path.exists():
            raise RuntimeError(f"Field registry file not found: {path}")
        with path.open("r", encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                cfg = yaml.safe_load(f)
            else:
                cfg = json.load(f)
        self.fields = self._parse_config(cfg or {})
        log.info("Loaded %d filter fields from %s", len(self.fields), path)

    @classmethod
    def from_config(cls, cfg: t.Mapping[str, t.Any]) -> "Registry":
        return cls(cls._parse_config(cfg))

    @staticmethod
    def _parse_config(cfg: t.Mapping[str, t.Any]) -> dict[str, FieldTypeDefinition]:
        out: dict[str, FieldTypeDefinition] = {}
        for k, v in (cfg.get("fields") or {}).items():
            if not isinstance(v, dict) or "type" not in v:
                raise RuntimeError(f"Bad field mapping for {k}: {v}")
            try:
                out[k] = default_definition(
                    v["type"],
                    options=v.get("options"),
                    allowed_operators=v.get("operators"),
                )
            except ValueError as e:
                raise RuntimeError(f"Bad field mapping for {k}: {e}") from e
        return out

    @classmethod
    def from_sample(cls, record: t.Mapping[str, t.Any]) -> "Registry":
        """Derive field definitions from one sample record."""
        return cls({k: default_definition(_infer_kind(v)) for k, v in record.items()})

    def describe(self) -> list[dict[str, t.Any]]:
        out = []
        for name, d in self.fields.items():
            item: dict[str, t.Any] = {
                "name": name,
                "type": d.kind.value,
                "operators": sorted(o.value for o in d.allowed_operators),
            }
            if d.options:
                item["options"] = [{"label": o.label, "value": o.value} for o in d.options]
            out.append(item)
        return out
