import json
import os

# Settings are read from the environment; keep a developer's shell from leaking in.
for _name in list(os.environ):
    if _name.startswith("SCHEMA_REGISTRY_"):
        del os.environ[_name]

import pytest

from schema_cache.codecs.base import CodecFactory
from schema_cache.registry.cache import SchemaCache
from schema_cache.registry.models import SchemaType
from tests.fakes import CountingCompiler, FakeTransport


@pytest.fixture
def order_schema() -> dict:
    return {
        "type": "record",
        "name": "Order",
        "namespace": "com.example.orders",
        "fields": [
            {"name": "order_id", "type": "string"},
            {"name": "amount", "type": "double"},
            {
                "name": "status",
                "type": {"type": "enum", "name": "Status", "symbols": ["NEW", "PAID"]},
            },
        ],
    }


@pytest.fixture
def order_schema_str(order_schema: dict) -> str:
    return json.dumps(order_schema)


@pytest.fixture
def order_event() -> dict:
    return {"order_id": "order-123", "amount": 42.5, "status": "PAID"}


@pytest.fixture
def trip_json_schema() -> dict:
    return {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "type": "object",
        "properties": {
            "trip_id": {"type": "string"},
            "driver_id": {"type": "string"},
            "fare": {"type": "number"},
        },
        "required": ["trip_id", "driver_id"],
    }


@pytest.fixture
def orders_v3(order_schema_str: str) -> dict:
    """Registry body for version 3 of the orders-value subject."""
    return {"subject": "orders-value", "version": 3, "id": 7, "schema": order_schema_str}


@pytest.fixture
def compiler() -> CountingCompiler:
    return CountingCompiler()


@pytest.fixture
def codec_factory(compiler: CountingCompiler) -> CodecFactory:
    return CodecFactory({t: compiler for t in SchemaType})


@pytest.fixture
def transport(order_schema_str: str, orders_v3: dict) -> FakeTransport:
    return FakeTransport(
        {
            ("GET", "/schemas/ids/7"): {"schema": order_schema_str},
            ("GET", "/subjects/orders-value/versions/latest"): orders_v3,
            ("GET", "/subjects/orders-value/versions/3"): orders_v3,
            ("POST", "/subjects/orders-value/versions"): {"id": 7},
        }
    )


@pytest.fixture
def cache(transport: FakeTransport, codec_factory: CodecFactory) -> SchemaCache:
    return SchemaCache(transport, codec_factory=codec_factory)  # type: ignore[arg-type]
