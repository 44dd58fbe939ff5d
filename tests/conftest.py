import pytest

from filterkit.builder import FilterBuilder, SequentialIdProvider
from filterkit.registry import Registry, default_definition


STATUS_OPTIONS = [
    {"label": "Active", "value": "active"},
    {"label": "Inactive", "value": "inactive"},
]


@pytest.fixture
def registry() -> Registry:
    return Registry(
        {
            "Name": default_definition("string"),
            "Code": default_definition("string", allowed_operators=["EQ", "NE"]),
            "Price": default_definition("number"),
            "CreatedAt": default_definition("date"),
            "InStock": default_definition("boolean"),
            "ListPrice": default_definition("currency"),
            "Status": default_definition("select", options=STATUS_OPTIONS),
        }
    )


@pytest.fixture
def builder(registry) -> FilterBuilder:
    return FilterBuilder(registry, id_provider=SequentialIdProvider())
