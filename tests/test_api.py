"""End-to-end tests of the HTTP facade."""

import shlex
import sys
import threading
import time
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from devloop.core.crypto import hash_api_key
from devloop.main import create_app
from devloop.modules.catalog import script_id_for
from devloop.modules.config import AppConfig, ConfigManager

PYTHON = shlex.quote(sys.executable)
HELLO = 'import sys\nprint("Hello: " + sys.argv[1])'
HELLO_HEADER = {
    "name": "Hello",
    "category": "Demo",
    "inputs": '[{"name":"name","type":"string","default":""}]',
}


@pytest.fixture
def make_client(make_settings, scripts_dir):
    """Factory yielding a started TestClient for a config pointing at ``scripts_dir``."""
    clients = []

    def _make(api_key=None, **execution):
        settings = make_settings(api_key=api_key, **execution)
        ConfigManager(settings.config_file).update(
            AppConfig(script_folders=[str(scripts_dir)], extension_commands={".py": PYTHON}, editor=f"{PYTHON} -c pass")
        )
        client = TestClient(create_app(settings))
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


class TestScenario:
    """The load, list, execute and history flow."""

    def test_load_list_exec_history(self, make_client, scripts_dir, write_script):
        """A loaded script can be listed, run and found in history."""
        client = make_client()
        path = write_script(scripts_dir, "test.py", HELLO, header=HELLO_HEADER)
        script_id = script_id_for(str(path))

        loaded = client.post("/api/actions/scripts/load", json={"folders": [str(scripts_dir)]})
        assert loaded.status_code == 200
        assert loaded.json()["total"] == 1

        scripts = client.get("/api/scripts").json()
        assert [s["name"] for s in scripts] == ["Hello"]
        assert scripts[0]["inputs"][0]["name"] == "name"
        assert "content" not in scripts[0]

        response = client.post(f"/api/actions/exec/scripts/{script_id}", json={"args": ["World"]})
        assert response.status_code == 200
        assert "Hello: World" in response.text
        assert response.headers["X-Exit-Code"] == "0"
        assert response.headers["X-Execution-Status"] == "succeeded"
        execution_id = response.headers["X-Execution-Id"]

        history = client.get(f"/api/history/scripts/{script_id}").json()
        assert len(history) == 1
        assert history[0]["id"] == execution_id
        assert history[0]["exitcode"] == 0
        assert history[0]["execute_request"]["args"] == ["World"]

        single = client.get(f"/api/history/{execution_id}").json()
        assert single["output"].strip() == "Hello: World"

        recent = client.get("/api/history/scripts/recent").json()
        assert [r["id"] for r in recent] == [script_id]
        assert recent[0]["lastExecuted"] is not None

    def test_load_keeps_configured_folders(self, make_client, scripts_dir, tmp_path, write_script):
        """Folders passed to load are scanned alongside the configured ones."""
        write_script(scripts_dir, "configured.py", "print(1)", header={"name": "configured"})
        extra = tmp_path / "extra"
        write_script(extra, "extra.py", "print(1)", header={"name": "extra"})
        client = make_client()

        loaded = client.post("/api/actions/scripts/load", json={"folders": [str(extra)]})

        assert loaded.json()["total"] == 2
        assert [s["name"] for s in client.get("/api/scripts").json()] == ["configured", "extra"]

    def test_incognito_masks_history(self, make_client, scripts_dir, write_script):
        """The response carries output; history reads are redacted."""
        path = write_script(scripts_dir, "test.py", HELLO, header=HELLO_HEADER)
        client = make_client()
        script_id = script_id_for(str(path))

        response = client.post(
            f"/api/actions/exec/scripts/{script_id}?incognito=true",
            json={"args": ["World"], "env": {"SECRET": "v"}},
        )

        assert "Hello: World" in response.text
        (record,) = client.get(f"/api/history/scripts/{script_id}").json()
        assert record["incognito"] is True
        assert record["execute_request"]["args"] == ["*****"]
        assert record["execute_request"]["env"] == {"SECRET": "*****"}
        assert record["output"] == "*****"
        assert record["exitcode"] == 0

    def test_script_detail_includes_content(self, make_client, scripts_dir, write_script):
        """The single-script view carries the file text."""
        path = write_script(scripts_dir, "test.py", HELLO, header=HELLO_HEADER)
        client = make_client()

        detail = client.get(f"/api/scripts/{script_id_for(str(path))}").json()

        assert "Hello: " in detail["content"]

    def test_list_filters_and_pagination(self, make_client, scripts_dir, write_script):
        """Search, category and paging query parameters are honored."""
        for name in ("alpha", "beta", "gamma"):
            write_script(scripts_dir, f"{name}.py", "print(1)", header={"name": name, "category": "Demo"})
        client = make_client()

        assert [s["name"] for s in client.get("/api/scripts", params={"search": "ET"}).json()] == ["beta"]
        assert [s["name"] for s in client.get("/api/scripts", params={"limit": 2, "page": 2}).json()] == ["gamma"]
        assert client.get("/api/categories").json() == [{"category": "Demo", "count": 3}]

    def test_edit_script_launches_editor(self, make_client, scripts_dir, write_script):
        """PATCH starts the configured editor and returns no body."""
        path = write_script(scripts_dir, "test.py", HELLO, header=HELLO_HEADER)
        client = make_client()

        response = client.patch(f"/api/scripts/{script_id_for(str(path))}")

        assert response.status_code == 204


class TestErrors:
    """Error kinds and status codes."""

    def test_unknown_script(self, make_client):
        """Unknown scripts are 404 with an error kind."""
        response = make_client().post("/api/actions/exec/scripts/missing", json={})

        assert response.status_code == 404
        assert response.json()["error"] == "ScriptNotFoundError"

    def test_unsupported_extension(self, make_client, scripts_dir, write_script):
        """A cataloged script without an interpreter is 422."""
        path = write_script(scripts_dir, "tool.rb", "puts 1", header={"name": "Ruby"})
        client = make_client()

        response = client.post(f"/api/actions/exec/scripts/{script_id_for(str(path))}")

        assert response.status_code == 422
        assert response.json()["error"] == "UnsupportedExtensionError"

    def test_timeout_is_504_with_output(self, make_client, scripts_dir, write_script):
        """Timed out runs return their partial output and execution id."""
        path = write_script(scripts_dir, "hang.py", "import time\nprint('waiting', flush=True)\ntime.sleep(30)")
        client = make_client(timeout_seconds=0.5, kill_grace_seconds=1)

        response = client.post(f"/api/actions/exec/scripts/{script_id_for(str(path))}")

        assert response.status_code == 504
        body = response.json()
        assert body["error"] == "ExecutionTimedOutError"
        assert "waiting" in body["output"]
        assert body["execution_id"]

    def test_duplicate_folder_rejected(self, make_client, scripts_dir):
        """A config with a repeated folder is refused and nothing changes."""
        client = make_client()
        before = client.get("/api/config").json()

        document = dict(before, scriptFolders=[str(scripts_dir), str(scripts_dir)])
        response = client.post("/api/config", json=document)

        assert response.status_code == 400
        assert response.json()["error"] == "ConfigValidationError"
        assert client.get("/api/config").json() == before

    def test_cancel_without_running_execution(self, make_client):
        """Cancelling an idle script is 404."""
        client = make_client()
        response = client.post("/api/actions/cancel/scripts/idle")

        assert response.status_code == 404
        assert response.json()["error"] == "ExecutionNotFoundError"
        assert client.get("/api/actions/exec/running").json() == []


class TestConfigEndpoint:
    """Config replacement and its side effects."""

    def test_update_rescans_when_folders_change(self, make_client, tmp_path, write_script):
        """Changing folders rebuilds the catalog before responding."""
        client = make_client()
        other = tmp_path / "other"
        write_script(other, "new.py", "print(1)", header={"name": "Fresh"})

        document = client.get("/api/config").json()
        document["scriptFolders"] = [str(other)]
        document["extensionCommands"] = {"py": PYTHON}
        response = client.post("/api/config", json=document)

        assert response.status_code == 200
        assert response.json()["extensionCommands"] == {".py": PYTHON}
        assert [s["name"] for s in client.get("/api/scripts").json()] == ["Fresh"]

    def test_concurrent_updates_leave_catalog_matching_config(self, make_client, tmp_path, write_script):
        """A slow rescan cannot overwrite the catalog of a later accepted config."""
        client = make_client()
        container = client.app.state.container
        slow, fast = tmp_path / "slow", tmp_path / "fast"
        write_script(slow, "slow.py", "print(1)", header={"name": "slow"})
        write_script(fast, "fast.py", "print(1)", header={"name": "fast"})
        base = container.config_manager.get()
        load_folders = container.catalog.load_folders

        def delayed(folders, extension_commands=()):
            if str(slow) in folders:
                time.sleep(0.3)
            return load_folders(folders, extension_commands)

        with patch.object(container.catalog, "load_folders", side_effect=delayed):
            first = threading.Thread(
                target=container.apply_config,
                args=(base.model_copy(update={"script_folders": [str(slow)]}),),
            )
            first.start()
            time.sleep(0.1)
            container.apply_config(base.model_copy(update={"script_folders": [str(fast)]}))
            first.join()

        accepted = container.config_manager.get().script_folders
        names = [script.name for script in container.catalog.list()]
        assert names == [folder.rsplit("/", 1)[-1] for folder in accepted]


class TestDeletion:
    """Script and history deletion."""

    def test_deleting_script_keeps_history(self, make_client, scripts_dir, write_script):
        """History outlives the script unless purge is requested."""
        path = write_script(scripts_dir, "test.py", HELLO, header=HELLO_HEADER)
        client = make_client()
        script_id = script_id_for(str(path))
        client.post(f"/api/actions/exec/scripts/{script_id}", json={"args": ["A"]})

        response = client.delete(f"/api/scripts/{script_id}")

        assert response.status_code == 200
        assert client.get(f"/api/scripts/{script_id}").status_code == 404
        history = client.get(f"/api/history/scripts/{script_id}").json()
        assert len(history) == 1
        recent = client.get("/api/history/scripts/recent").json()
        assert recent[0]["name"] == "Hello"
        assert path.exists()

    def test_delete_with_rm_and_purge(self, make_client, scripts_dir, write_script):
        """``rm`` removes the file and ``purge`` the history."""
        path = write_script(scripts_dir, "test.py", HELLO, header=HELLO_HEADER)
        client = make_client()
        script_id = script_id_for(str(path))
        client.post(f"/api/actions/exec/scripts/{script_id}", json={"args": ["A"]})

        body = client.delete(f"/api/scripts/{script_id}", params={"rm": "true", "purge": "true"}).json()

        assert body == {"id": script_id, "file_removed": True, "purged_executions": 1}
        assert not path.exists()
        assert client.get(f"/api/history/scripts/{script_id}").json() == []

    def test_delete_execution(self, make_client, scripts_dir, write_script):
        """Single records can be deleted once."""
        path = write_script(scripts_dir, "test.py", HELLO, header=HELLO_HEADER)
        client = make_client()
        response = client.post(f"/api/actions/exec/scripts/{script_id_for(str(path))}", json={"args": ["A"]})
        execution_id = response.headers["X-Execution-Id"]

        assert client.delete(f"/api/history/{execution_id}").status_code == 204
        assert client.delete(f"/api/history/{execution_id}").status_code == 404


class TestAuth:
    """API key enforcement."""

    def test_missing_key_is_401(self, make_client):
        """Requests without the configured key are refused."""
        client = make_client(api_key="letmein")

        assert client.get("/api/scripts").status_code == 401
        assert client.get("/api/scripts", headers={"Authorization": "Bearer wrong"}).status_code == 401

    def test_bearer_and_bare_keys_are_accepted(self, make_client):
        """Both ``Bearer <key>`` and the bare key authenticate."""
        client = make_client(api_key="letmein")

        assert client.get("/api/scripts", headers={"Authorization": "Bearer letmein"}).status_code == 200
        assert client.get("/api/scripts", headers={"Authorization": "letmein"}).status_code == 200

    def test_hashed_key(self, make_settings, scripts_dir):
        """A bcrypt hash of the key may be configured instead of the key."""
        settings = make_settings()
        settings.security.api_key_hash = hash_api_key("letmein")
        ConfigManager(settings.config_file).update(AppConfig(script_folders=[str(scripts_dir)]))

        with TestClient(create_app(settings)) as client:
            assert client.get("/api/config").status_code == 401
            assert client.get("/api/config", headers={"Authorization": "Bearer letmein"}).status_code == 200


class TestEvents:
    """The change-subscription websocket."""

    def test_reload_is_broadcast(self, make_client, scripts_dir):
        """Subscribers are told about catalog reloads."""
        client = make_client()

        with client.websocket_connect("/ws/events") as websocket:
            client.post("/api/actions/scripts/load", json={})
            event = websocket.receive_json()

        assert event["type"] == "catalog.reloaded"
        assert event["data"]["total"] == 0

    def test_invalid_token_is_refused(self, make_client):
        """Subscriptions need the API key when one is configured."""
        client = make_client(api_key="letmein")

        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws/events?token=nope") as websocket:
                websocket.receive_json()
