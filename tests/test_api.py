"""HTTP API tests."""
import pytest
from httpx import AsyncClient

USER = {"login": "octo", "name": "Octo Cat", "avatar_url": "https://avatars/octo"}


async def _prod_env(client: AsyncClient) -> None:
    assert (await client.post("/api/environments", json={"name": "prod"})).status_code == 201
    assert (await client.post("/api/environments/0/vars")).status_code == 201
    await client.patch("/api/environments/0/vars/0", json={"field": "key", "value": "URL"})
    await client.patch("/api/environments/0/vars/0", json={"field": "value", "value": "https://x"})
    await client.post("/api/environments/0/secrets")
    await client.patch("/api/environments/0/secrets/0", json={"field": "key", "value": "TOKEN"})
    await client.patch("/api/environments/0/secrets/0", json={"field": "value", "value": "abc"})


# ---------- meta ----------
@pytest.mark.asyncio
async def test_ping_and_health(client: AsyncClient):
    assert (await client.get("/api/ping")).json() == {"ok": True}
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["sync_state"] == "unauthenticated"


# ---------- environments ----------
@pytest.mark.asyncio
async def test_create_duplicate_and_blank_environment(client: AsyncClient):
    resp = await client.post("/api/environments", json={"name": "dev"})
    assert resp.status_code == 201
    assert resp.json()["name"] == "dev"

    resp = await client.post("/api/environments", json={"name": "dev"})
    assert resp.status_code == 409
    assert resp.json()["error"] == "DuplicateNameError"

    resp = await client.post("/api/environments", json={"name": "  "})
    assert resp.status_code == 422
    assert resp.json()["error"] == "EmptyNameError"

    assert len((await client.get("/api/environments")).json()["environments"]) == 1


@pytest.mark.asyncio
async def test_secret_values_masked_until_toggled(client: AsyncClient):
    await _prod_env(client)
    env = (await client.get("/api/environments")).json()["environments"][0]
    assert env["secrets"] == [{"key": "TOKEN", "value": "********"}]
    assert env["vars"] == [{"key": "URL", "value": "https://x"}]

    resp = await client.post("/api/environments/prod/secrets/visibility")
    assert resp.json() == {"name": "prod", "secrets_visible": True}
    env = (await client.get("/api/environments")).json()["environments"][0]
    assert env["secrets"] == [{"key": "TOKEN", "value": "abc"}]


@pytest.mark.asyncio
async def test_entry_errors(client: AsyncClient):
    assert (await client.post("/api/environments/0/vars")).status_code == 404
    await client.post("/api/environments", json={"name": "dev"})
    assert (await client.post("/api/environments/0/files")).status_code == 422
    resp = await client.patch("/api/environments/0/vars/3", json={"field": "key", "value": "X"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "IndexOutOfRangeError"


@pytest.mark.asyncio
async def test_remove_entry_and_environment(client: AsyncClient):
    await _prod_env(client)
    assert (await client.delete("/api/environments/0/vars/0")).status_code == 204
    env = (await client.get("/api/environments")).json()["environments"][0]
    assert env["vars"] == []
    assert (await client.delete("/api/environments/prod")).status_code == 204
    assert (await client.delete("/api/environments/prod")).status_code == 204
    assert (await client.get("/api/environments")).json()["environments"] == []


# ---------- structure ----------
@pytest.mark.asyncio
async def test_structure_views(client: AsyncClient):
    await _prod_env(client)
    template = (await client.get("/api/structure/template")).json()
    assert template == {"prod": {"vars": {"URL": ""}, "secrets": {"TOKEN": ""}}}
    current = (await client.get("/api/structure/current")).json()
    assert current == {"prod": {"vars": {"URL": "https://x"}, "secrets": {"TOKEN": "abc"}}}
    info = (await client.get("/api/structure/info")).json()
    assert info == {"prod": {"vars": {"URL": "https://x"}, "secretKeys": ["TOKEN"]}}


@pytest.mark.asyncio
async def test_apply_replaces_store(client: AsyncClient):
    await _prod_env(client)
    doc = {
        "name": "svc",
        "structure": {
            "staging": {"vars": {"URL": "https://staging"}, "secrets": {"TOKEN": "x"}},
            "qa": {"vars": {}, "secrets": {}},
        },
    }
    resp = await client.post("/api/structure/apply", json=doc)
    assert resp.status_code == 200
    assert resp.json()["environments"] == ["staging", "qa"]
    current = (await client.get("/api/structure/current")).json()
    assert current == {
        "staging": {"vars": {"URL": "https://staging"}, "secrets": {"TOKEN": ""}},
        "qa": {"vars": {}, "secrets": {}},
    }


# ---------- templates ----------
@pytest.mark.asyncio
async def test_save_search_download_apply_template(client: AsyncClient):
    await _prod_env(client)
    resp = await client.post("/api/templates", json={"name": "Web Service", "version": "1.0"})
    assert resp.status_code == 201
    assert resp.json()["replaced"] is False

    found = (await client.get("/api/templates", params={"search": "web"})).json()
    assert [t["name"] for t in found] == ["Web Service"]
    assert (await client.get("/api/templates", params={"search": "zzz"})).json() == []

    resp = await client.get("/api/templates/Web Service/download")
    assert resp.status_code == 200
    assert 'filename="Web-Service.json"' in resp.headers["content-disposition"]
    assert resp.json()["structure"] == {"prod": {"vars": {"URL": ""}, "secrets": {"TOKEN": ""}}}

    await client.delete("/api/environments/prod")
    resp = await client.post("/api/templates/Web Service/apply")
    assert resp.json()["environments"] == ["prod"]
    current = (await client.get("/api/structure/current")).json()
    assert current == {"prod": {"vars": {"URL": ""}, "secrets": {"TOKEN": ""}}}


@pytest.mark.asyncio
async def test_import_template(client: AsyncClient):
    raw = b'{"name": "imported", "structure": {"dev": {"vars": {"DEBUG": "1"}, "secrets": {"KEY": ""}}}}'
    resp = await client.post("/api/templates/import", content=raw)
    assert resp.status_code == 200
    assert resp.json()["environments"] == ["dev"]

    resp = await client.post("/api/templates/import", content=b"garbage")
    assert resp.status_code == 422
    assert resp.json()["error"] == "TemplateFormatError"
    # failed import leaves the store alone
    assert (await client.get("/api/structure/template")).json() == {
        "dev": {"vars": {"DEBUG": ""}, "secrets": {"KEY": ""}}
    }


@pytest.mark.asyncio
async def test_missing_template(client: AsyncClient):
    assert (await client.get("/api/templates/nope")).status_code == 404
    assert (await client.delete("/api/templates/nope")).status_code == 404


# ---------- github ----------
@pytest.mark.asyncio
async def test_credential_then_repository(client: AsyncClient, fake_github):
    fake_github.add("GET", "/user", json_body=USER)
    fake_github.add("GET", "/repos/octo/app", json_body={"full_name": "octo/app"})

    resp = await client.post("/api/github/credential", json={"token": "ghp_good"})
    assert resp.status_code == 200
    assert resp.json()["user"]["login"] == "octo"
    assert resp.json()["state"] == "credential_valid"

    resp = await client.put("/api/github/repository", json={"repository": "octo/app"})
    assert resp.json()["has_repo_access"] is True
    assert resp.json()["state"] == "repo_access_granted"


@pytest.mark.asyncio
async def test_credential_checks_access_when_repository_known(client: AsyncClient, fake_github):
    fake_github.add("GET", "/user", json_body=USER)
    resp = await client.put("/api/github/repository", json={"repository": "octo/private"})
    assert resp.json()["state"] == "unauthenticated"

    resp = await client.post("/api/github/credential", json={"token": "ghp_good"})
    assert resp.json()["state"] == "repo_access_denied"
    assert fake_github.paths() == ["/user", "/repos/octo/private"]


@pytest.mark.asyncio
async def test_invalid_credential_and_malformed_repository(client: AsyncClient, fake_github):
    fake_github.add("GET", "/user", status=401, json_body={"message": "Bad credentials"})
    resp = await client.post("/api/github/credential", json={"token": "nope"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "InvalidCredentialError"

    resp = await client.put("/api/github/repository", json={"repository": "not-a-valid-id"})
    assert resp.status_code == 422
    assert resp.json()["error"] == "MalformedRepositoryIdError"


@pytest.mark.asyncio
async def test_dispatch_without_access_is_precondition_failure(client: AsyncClient, fake_github):
    resp = await client.post("/api/github/dispatch")
    assert resp.status_code == 412
    assert resp.json()["error"] == "PreconditionError"
    assert fake_github.calls == []


@pytest.mark.asyncio
async def test_dispatch_current_structure(client: AsyncClient, fake_github):
    import json

    fake_github.add("GET", "/user", json_body=USER)
    fake_github.add("GET", "/repos/octo/app", json_body={})
    fake_github.add("GET", "/repos/octo/app/actions/workflows", json_body={
        "workflows": [{"id": 7, "name": "Update Environment", "path": ".github/workflows/envs.yml"}],
    })
    fake_github.add("POST", "/repos/octo/app/actions/workflows/7/dispatches", status=204)
    await _prod_env(client)
    await client.post("/api/github/credential", json={"token": "ghp_good"})
    await client.put("/api/github/repository", json={"repository": "octo/app"})

    resp = await client.post("/api/github/dispatch")
    assert resp.status_code == 200
    assert resp.json()["statusCode"] == 204

    post = [r for r in fake_github.calls if r.method == "POST"][0]
    sent = json.loads(json.loads(post.content)["inputs"]["structure"])
    assert sent == {"prod": {"vars": {"URL": "https://x"}, "secrets": {"TOKEN": "abc"}}}

    status = (await client.get("/api/github/status")).json()
    assert status["state"] == "dispatched"
    assert status["last_response"]["statusCode"] == 204


@pytest.mark.asyncio
async def test_remote_environments(client: AsyncClient, fake_github):
    fake_github.add("GET", "/user", json_body=USER)
    fake_github.add("GET", "/repos/octo/app", json_body={})
    fake_github.add("GET", "/repos/octo/app/environments", json_body={"environments": [{"name": "staging"}]})
    fake_github.add("GET", "/repos/octo/app/environments/staging/variables",
                    json_body={"variables": [{"name": "URL", "value": "https://s"}]})
    await client.post("/api/github/credential", json={"token": "ghp_good"})
    await client.put("/api/github/repository", json={"repository": "octo/app"})

    resp = await client.get("/api/github/environments")
    assert resp.status_code == 200
    assert resp.json()["environments"] == [{
        "name": "staging",
        "variables": [{"name": "URL", "value": "https://s"}],
        "secrets": [],
        "error": None,
    }]


@pytest.mark.asyncio
async def test_remote_environments_failure(client: AsyncClient, fake_github):
    fake_github.add("GET", "/user", json_body=USER)
    fake_github.add("GET", "/repos/octo/app/environments", status=500, json_body={"message": "boom"})
    await client.post("/api/github/credential", json={"token": "ghp_good"})
    await client.put("/api/github/repository", json={"repository": "octo/app"})

    resp = await client.get("/api/github/environments")
    assert resp.status_code == 502
    assert resp.json() == {"error": "RemoteFetchError", "detail": "boom"}


@pytest.mark.asyncio
async def test_save_template_refuses_damaged_file(client: AsyncClient, tmp_path):
    path = tmp_path / "templates.json"
    path.write_text('{"templates": [{"name": "a"', "utf-8")
    await _prod_env(client)

    resp = await client.post("/api/templates", json={"name": "b"})
    assert resp.status_code == 422
    assert resp.json()["error"] == "TemplateFormatError"
    assert path.read_text("utf-8") == '{"templates": [{"name": "a"'
    assert (await client.get("/api/templates")).json() == []
