import json

import pytest
import respx
from httpx import Response

from schema_cache.cache_logging import LogContext
from schema_cache.codecs.avro import AvroCodec
from schema_cache.codecs.framing import frame
from schema_cache.core.exceptions import CodecError, ConflictError, SerializationError
from schema_cache.registry.client import SchemaRegistryClient
from schema_cache.registry.models import CompatibilityResult, SchemaType
from schema_cache.settings import RegistrySettings

URL = "http://schema-registry:8081"
BROKEN_AVRO = json.dumps(
    {"type": "record", "name": "Broken", "fields": [{"name": "x", "type": "NoSuchType"}]}
)


@pytest.fixture
def client():
    settings = RegistrySettings(urls=URL)
    with SchemaRegistryClient.from_settings(settings) as c:
        yield c


@pytest.fixture
def registry(order_schema_str, orders_v3):
    with respx.mock(base_url=URL, assert_all_called=False) as router:
        router.get("/schemas/ids/7", name="by_id").mock(
            return_value=Response(200, json={"schema": order_schema_str})
        )
        router.get("/subjects/orders-value/versions/latest", name="latest").mock(
            return_value=Response(200, json=orders_v3)
        )
        router.get("/subjects/orders-value/versions/3", name="version").mock(
            return_value=Response(200, json=orders_v3)
        )
        router.post("/subjects/orders-value/versions", name="register").mock(
            return_value=Response(200, json={"id": 7})
        )
        yield router


@pytest.mark.unit
class TestLookups:
    def test_schema_by_id_carries_a_codec(self, client, registry, order_event):
        schema = client.get_schema(7)

        assert isinstance(schema.codec, AvroCodec)
        assert schema.decode(schema.encode(order_event)) == order_event

    def test_json_text_round_trip(self, client, registry, order_event):
        schema = client.get_latest_version("orders-value")

        text = schema.encode_json(order_event)

        assert json.loads(text)["order_id"] == "order-123"
        assert schema.decode_json(text) == order_event

    def test_latest_then_id_and_version_are_free(self, client, registry):
        latest = client.get_latest_version("orders-value")

        assert client.get_schema(7) is latest
        assert client.get_version("orders-value", 3) is latest
        assert registry["latest"].call_count == 1
        assert not registry["by_id"].called
        assert not registry["version"].called

    def test_latest_is_refreshed_but_versions_are_not(self, client, registry):
        client.get_latest_version("orders-value")
        client.get_latest_version("orders-value")
        client.get_version("orders-value", 3)
        client.get_version("orders-value", 3)

        assert registry["latest"].call_count == 2
        assert not registry["version"].called

    def test_codecs_can_be_disabled(self, registry):
        settings = RegistrySettings(urls=URL, codecs_enabled=False)
        with SchemaRegistryClient.from_settings(settings) as client:
            schema = client.get_schema(7)

        assert schema.codec is None
        with pytest.raises(CodecError):
            schema.encode({"order_id": "x"})

    def test_malformed_schema_raises_codec_error_but_stays_cached(self, client):
        with respx.mock(base_url=URL) as router:
            route = router.get("/schemas/ids/40").mock(
                return_value=Response(200, json={"schema": BROKEN_AVRO})
            )

            with pytest.raises(CodecError):
                client.get_schema(40)
            schema = client.cache.resolve_by_id(40)

        assert schema.id == 40
        assert schema.codec is None
        assert route.call_count == 1


@pytest.mark.unit
class TestRegister:
    def test_register_once_per_definition(self, client, registry, order_schema_str):
        first = client.register_schema("orders-value", order_schema_str)
        second = client.register_schema("orders-value", order_schema_str)

        assert first.id == second.id == 7
        assert registry["register"].call_count == 1
        assert first.codec is not None

    def test_register_conflict_surfaces(self, client, order_schema_str):
        with respx.mock(base_url=URL) as router:
            router.post("/subjects/orders-value/versions").mock(
                return_value=Response(
                    409, json={"error_code": 409, "message": "incompatible with an earlier schema"}
                )
            )

            with pytest.raises(ConflictError):
                client.register_schema("orders-value", order_schema_str)

    def test_lookup_schema(self, client, order_schema_str, orders_v3):
        with respx.mock(base_url=URL) as router:
            router.post("/subjects/orders-value").mock(return_value=Response(200, json=orders_v3))

            schema = client.lookup_schema("orders-value", order_schema_str)

        assert schema.version == 3
        assert schema.subject == "orders-value"


@pytest.mark.unit
class TestCompatibility:
    def test_never_cached(self, client, order_schema_str):
        with respx.mock(base_url=URL) as router:
            route = router.post("/compatibility/subjects/orders-value/versions/latest").mock(
                return_value=Response(200, json={"is_compatible": True})
            )

            first = client.check_compatibility("orders-value", order_schema_str)
            second = client.check_compatibility("orders-value", order_schema_str)

        assert first == second == CompatibilityResult(is_compatible=True, messages=[])
        assert route.call_count == 2

    def test_verbose_messages(self, client, trip_json_schema):
        with respx.mock(base_url=URL) as router:
            route = router.post("/compatibility/subjects/trips-value/versions/2").mock(
                return_value=Response(
                    200,
                    json={"is_compatible": False, "messages": ["Property 'fare' removed"]},
                )
            )

            result = client.check_compatibility(
                "trips-value",
                json.dumps(trip_json_schema),
                schema_type=SchemaType.JSON,
                version=2,
                verbose=True,
            )

        request = route.calls.last.request
        assert request.url.params["verbose"] == "true"
        assert json.loads(request.content)["schemaType"] == "JSON"
        assert result.is_compatible is False
        assert result.messages == ["Property 'fare' removed"]


@pytest.mark.unit
class TestDelete:
    def test_delete_version_invalidates_cache(self, client, registry):
        registry.delete("/subjects/orders-value/versions/3", name="delete").mock(
            return_value=Response(200, json=3)
        )

        client.get_version("orders-value", 3)
        deleted = client.delete_version("orders-value", 3)
        client.get_version("orders-value", 3)

        assert deleted == 3
        assert registry["version"].call_count == 2

    def test_delete_version_forgets_registration_without_version(
        self, client, registry, order_schema_str
    ):
        registry.delete("/subjects/orders-value/versions/3", name="delete").mock(
            return_value=Response(200, json=3)
        )

        client.register_schema("orders-value", order_schema_str)
        client.delete_version("orders-value", 3)
        client.register_schema("orders-value", order_schema_str)

        assert registry["register"].call_count == 2

    def test_delete_subject_invalidates_every_version(self, client, registry):
        registry.delete("/subjects/orders-value", name="delete").mock(
            return_value=Response(200, json=[1, 2, 3])
        )

        client.get_latest_version("orders-value")
        deleted = client.delete_subject("orders-value", permanent=True)
        client.get_schema(7)

        assert deleted == [1, 2, 3]
        assert registry["delete"].calls.last.request.url.params["permanent"] == "true"
        assert registry["by_id"].call_count == 1


@pytest.mark.unit
class TestListings:
    def test_subjects_and_versions(self, client):
        with respx.mock(base_url=URL) as router:
            router.get("/subjects").mock(return_value=Response(200, json=["orders-value"]))
            router.get("/subjects/orders-value/versions").mock(
                return_value=Response(200, json=[1, 2, 3])
            )

            assert client.get_subjects() == ["orders-value"]
            assert client.get_versions("orders-value") == [1, 2, 3]


@pytest.mark.unit
class TestFramedMessages:
    def test_encode_then_decode(self, client, registry, order_event):
        data = client.encode("orders-value", order_event)

        assert data[:5] == b"\x00\x00\x00\x00\x07"
        assert client.decode(data) == order_event
        assert not registry["by_id"].called

    def test_decode_resolves_unknown_id(self, client, registry, order_event):
        schema = client.get_version("orders-value", 3)
        message = frame(7, schema.encode(order_event))
        client.cache.invalidate_all()

        assert client.decode(message) == order_event
        assert registry["by_id"].call_count == 1

    def test_encode_with_explicit_id(self, client, registry, order_event):
        data = client.encode("orders-value", order_event, schema_id=7)

        assert data[1:5] == (7).to_bytes(4, "big")
        assert not registry["latest"].called

    def test_bad_magic_byte(self, client):
        with pytest.raises(SerializationError):
            client.decode(b"\x01\x00\x00\x00\x07abc")


def test_from_settings_applies_cache_options():
    settings = RegistrySettings(
        urls=URL, cache_responses=False, cache_not_found=True, latest_refresh=False
    )

    with SchemaRegistryClient.from_settings(settings) as client:
        assert client.cache.cache_responses is False
        assert client.cache.cache_not_found is True
        assert client.cache.latest_refresh is False


def test_subject_operations_bind_log_context(transport):
    seen = []

    def answer(body):
        seen.append(LogContext.fields())
        return [3]

    transport.routes[("DELETE", "/subjects/orders-value")] = answer
    client = SchemaRegistryClient(transport)  # type: ignore[arg-type]

    client.delete_subject("orders-value")

    assert seen == [{"subject": "orders-value"}]
    assert LogContext.fields() == {}
