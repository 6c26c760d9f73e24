"""
Server Info API Tests

Tests cover: the info and doc routes, basic authentication, partial
responses when a section fails, and configuration loading.
"""

import base64
import json

import pytest
from fastapi.testclient import TestClient

from serverinfo.core.config import (
    RouteConfig,
    ServerInfoConfig,
    get_config,
    reset_config,
    set_config,
)
from serverinfo.info.observers import (
    MultiplexerObserverSource,
    ObserveDriver,
    ObserveMultiplexer,
)
from serverinfo.info.sessions import InMemorySessionSource, SessionSnapshot
from serverinfo.info.sockets import InMemorySocketSource, SocketSnapshot
from serverinfo.info.types import InfoSection
from serverinfo.main import InfoSources, build_server_info, create_app


SECTIONS = ["sockets", "sessions", "mongo", "process"]


def basic(user, password):
    token = base64.b64encode(f"{user}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture(autouse=True)
def clean_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def sources(fake_process):
    observers = MultiplexerObserverSource()
    orders = ObserveMultiplexer(driver=ObserveDriver("orders", uses_oplog=True))
    orders.add_handle()
    orders.add_handle()
    observers.add_multiplexer("orders", orders)
    users = ObserveMultiplexer()
    users.add_handle(driver=ObserveDriver("users", uses_oplog=False))
    observers.add_multiplexer("users", users)

    sessions = InMemorySessionSource()
    sessions.put(SessionSnapshot("s1", user_id="alice", subscriptions=("orders",)))
    sessions.put(SessionSnapshot("s2", user_id="alice"))

    sockets = InMemorySocketSource()
    sockets.put(SocketSnapshot("k1", has_session=True))

    return InfoSources(
        observers=observers,
        sessions=sessions,
        sockets=sockets,
        facts={"livedata": {"invalidation-crossbar-listeners": 2}},
        process=fake_process,
    )


@pytest.fixture
def config():
    return ServerInfoConfig(monitoring={"log_format": "text"})


@pytest.fixture
def client(config, sources):
    with TestClient(create_app(config, sources=sources)) as client:
        yield client


# =============================================================================
# Route Tests
# =============================================================================

class TestInfoRoutes:
    """Test the info and doc endpoints."""

    def test_info(self, client):
        response = client.get("/serverInfo")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        body = response.json()
        assert list(body) == SECTIONS + ["facts"]
        assert body["mongo"] == {
            "nObserveHandles": 3,
            "oplogObserveHandles": {"orders": 2},
            "oplogObserveHandlesCount": 2,
            "pollingObserveHandles": {"users": 1},
            "pollingObserveHandlesCount": 1,
            "unclassifiedObserveHandles": 0,
        }
        assert body["facts"] == {"livedata": {"invalidation-crossbar-listeners": 2}}

    def test_int_counter_keys_serialize_as_strings(self, client):
        body = client.get("/serverInfo").json()

        assert body["sessions"]["usersWithNSessions"] == {"2": 1}
        assert body["sessions"]["nSubs"] == {"orders": 1}
        assert body["sockets"] == {
            "nSockets": 1,
            "nSocketsWithLivedataSessions": 1,
            "socketsByProtocol": {"websocket": 1},
        }

    def test_process_section(self, client):
        process = client.get("/serverInfo").json()["process"]

        assert set(process) == {"cpuSystem", "cpuUser", "loopDelay", "nThreads", "ramRss", "ramVms"}
        assert process["cpuUser"] >= 0
        assert process["ramRss"] == 50 * 1024 * 1024

    def test_doc(self, client):
        response = client.get("/serverInfo/doc")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        body = response.json()
        assert list(body) == SECTIONS
        assert body["mongo"]["oplogObserveHandles"] == {
            "type": "array",
            "label": "Oplog-based observers[]",
        }
        assert body["process"]["cpuUser"]["type"] == "number"

    def test_doc_matches_info_keys(self, client):
        info = client.get("/serverInfo").json()
        doc = client.get("/serverInfo/doc").json()

        for section, description in doc.items():
            assert set(description) == set(info[section])

    def test_body_is_plain_json(self, client):
        response = client.get("/serverInfo")

        assert json.loads(response.text) == response.json()

    def test_custom_path(self, sources):
        config = ServerInfoConfig(route={"path": "metrics/"})

        with TestClient(create_app(config, sources=sources)) as client:
            assert client.get("/metrics").status_code == 200
            assert client.get("/metrics/doc").status_code == 200
            assert client.get("/serverInfo").status_code == 404

    def test_sampler_runs_during_lifespan(self, config, sources):
        app = create_app(config, sources=sources)
        process = app.state.server_info.get_section("process")

        with TestClient(app):
            assert process.sampler.running

        assert not process.sampler.running


class TestPartialResponses:
    """A failing section does not fail the request."""

    def test_failing_section_omitted(self, config, sources):
        class Broken(InfoSection):
            def describe(self):
                return {}

            def collect(self):
                raise RuntimeError("registry gone")

        info = build_server_info(config, sources)
        info.register("broken", Broken())

        with TestClient(create_app(config, server_info=info)) as client:
            response = client.get("/serverInfo")

        assert response.status_code == 200
        body = response.json()
        assert "broken" not in body
        assert list(body) == SECTIONS + ["facts"]

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_metric_dropped(self, config, sources, value):
        class Ratio(InfoSection):
            def describe(self):
                return {}

            def collect(self):
                return {"ratio": value, "n": 1}

        info = build_server_info(config, sources)
        info.register("ratio", Ratio())

        with TestClient(create_app(config, server_info=info)) as client:
            response = client.get("/serverInfo")

        assert response.status_code == 200
        body = response.json()
        assert body["ratio"] == {"n": 1}
        assert body["mongo"]["nObserveHandles"] == 3

    def test_failing_describe_still_serves_doc(self, config, sources):
        class Undocumented(InfoSection):
            def describe(self):
                raise RuntimeError("no metadata")

            def collect(self):
                return {}

        info = build_server_info(config, sources)
        info.register("undocumented", Undocumented())

        with TestClient(create_app(config, server_info=info)) as client:
            response = client.get("/serverInfo/doc")

        assert response.status_code == 200
        assert list(response.json()) == SECTIONS

    def test_failing_facts_still_answers(self, config, sources):
        def facts():
            raise RuntimeError("facts registry gone")

        sources.facts = facts

        with TestClient(create_app(config, sources=sources)) as client:
            response = client.get("/serverInfo")

        assert response.status_code == 200
        body = response.json()
        assert list(body) == SECTIONS + ["facts"]
        assert body["facts"] == {}

    def test_lenient_outside_debug(self, config, sources):
        assert build_server_info(config, sources).strict is False
        debug = ServerInfoConfig(debug=True)
        assert build_server_info(debug, sources).strict is True


# =============================================================================
# Authentication Tests
# =============================================================================

class TestBasicAuth:
    """Test the optional basic authentication."""

    @pytest.fixture
    def client(self, sources):
        config = ServerInfoConfig(
            basic_auth=True,
            route={"user": "admin", "pass": "s3cret"},
        )
        with TestClient(create_app(config, sources=sources)) as client:
            yield client

    def test_missing_credentials(self, client):
        response = client.get("/serverInfo")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Basic"

    def test_wrong_credentials(self, client):
        assert client.get("/serverInfo", headers=basic("admin", "nope")).status_code == 401
        assert client.get("/serverInfo", headers=basic("root", "s3cret")).status_code == 401

    def test_valid_credentials(self, client):
        response = client.get("/serverInfo", headers=basic("admin", "s3cret"))

        assert response.status_code == 200
        assert "process" in response.json()

    def test_doc_is_never_gated(self, client):
        assert client.get("/serverInfo/doc").status_code == 200

    def test_default_credentials(self, sources):
        config = ServerInfoConfig(basic_auth=True)

        with TestClient(create_app(config, sources=sources)) as client:
            response = client.get("/serverInfo", headers=basic("insecure", "secureme"))

        assert response.status_code == 200

    def test_public_without_basic_auth(self, sources):
        with TestClient(create_app(ServerInfoConfig(), sources=sources)) as public:
            assert public.get("/serverInfo").status_code == 200


# =============================================================================
# Configuration Tests
# =============================================================================

class TestConfig:
    """Test configuration loading."""

    def test_defaults(self):
        config = ServerInfoConfig()

        assert config.route.path == "/serverInfo"
        assert config.route.user == "insecure"
        assert config.route.password == "secureme"
        assert config.sampler.loop_interval_ms == 10000.0
        assert config.basic_auth is False

    def test_pass_alias_and_field_name(self):
        assert RouteConfig(**{"pass": "a"}).password == "a"
        assert RouteConfig(password="b").password == "b"

    @pytest.mark.parametrize("raw,expected", [
        ("serverInfo", "/serverInfo"),
        ("/serverInfo/", "/serverInfo"),
        ("/a/b", "/a/b"),
    ])
    def test_path_normalized(self, raw, expected):
        assert RouteConfig(path=raw).path == expected

    def test_root_path_rejected(self):
        with pytest.raises(ValueError):
            RouteConfig(path="/")

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SERVERINFO_ROUTE__PATH", "/metrics")
        monkeypatch.setenv("SERVERINFO_SAMPLER__LOOP_INTERVAL_MS", "2500")
        monkeypatch.setenv("SERVERINFO_BASIC_AUTH", "true")

        config = ServerInfoConfig()

        assert config.route.path == "/metrics"
        assert config.sampler.loop_interval_ms == 2500.0
        assert config.basic_auth is True

    def test_from_file(self, tmp_path):
        path = tmp_path / "serverinfo.json"
        path.write_text(json.dumps({
            "port": 9000,
            "route": {"path": "/info", "user": "ops", "pass": "pw"},
        }))

        config = ServerInfoConfig.from_file(path)

        assert config.port == 9000
        assert config.route.path == "/info"
        assert config.route.password == "pw"

    def test_from_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ServerInfoConfig.from_file(tmp_path / "missing.json")

    def test_global_config(self):
        config = ServerInfoConfig(port=1234)
        set_config(config)

        assert get_config() is config

        reset_config()
        assert get_config().port == 8000
