import json

from newshub.core.config import settings
from newshub.models.source import Source


def _create(client, headers, **overrides):
    payload = {
        "name": "Example News",
        "url": "https://news.example.com",
        "type": "rss",
        "language": "en",
        "rssUrl": "https://news.example.com/feed.xml",
        "categories": ["General", "Tech"],
    }
    payload.update(overrides)
    return client.post("/admin/sources", json=payload, headers=headers)


def test_create_and_list_sources(client, auth_headers):
    resp = _create(client, auth_headers)
    assert resp.status_code == 201
    source = resp.json()["source"]
    assert source["rssUrls"] == ["https://news.example.com/feed.xml"]
    assert source["categories"] == ["general", "tech"]
    assert source["type"] == "rss"

    _create(client, auth_headers, name="Wire", url="https://wire.example.com", type="api", active=False)

    resp = client.get("/admin/sources", headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["sources"]) == 2
    config = body["config"]
    assert config["totalSources"] == 2
    assert config["activeSources"] == 1
    assert config["rssSources"] == 1
    assert config["apiSources"] == 1


def test_create_source_validation(client, auth_headers):
    resp = client.post("/admin/sources", json={"name": "x"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_unknown_type_is_stored_as_api(client, auth_headers):
    resp = _create(client, auth_headers, type="scraper")
    assert resp.status_code == 201
    assert resp.json()["source"]["type"] == "api"


def test_duplicate_source_url_conflicts(client, auth_headers):
    assert _create(client, auth_headers).status_code == 201
    resp = _create(client, auth_headers, name="Other name")
    assert resp.status_code == 409
    assert resp.json() == {"success": False, "message": "Source with this URL already exists"}


def test_patch_and_delete_source(client, auth_headers):
    source_id = _create(client, auth_headers).json()["source"]["id"]

    resp = client.patch(f"/admin/sources/{source_id}", json={"active": False, "name": "Renamed"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["source"]["active"] is False
    assert resp.json()["source"]["name"] == "Renamed"

    assert client.delete(f"/admin/sources/{source_id}", headers=auth_headers).status_code == 200
    assert client.delete(f"/admin/sources/{source_id}", headers=auth_headers).status_code == 404
    assert client.patch(f"/admin/sources/{source_id}", json={}, headers=auth_headers).status_code == 404


def test_source_status(client, auth_headers):
    source_id = _create(client, auth_headers).json()["source"]["id"]

    resp = client.put("/admin/sources/status", json={"sourceId": source_id, "active": False}, headers=auth_headers)
    assert resp.status_code == 200

    resp = client.get("/admin/sources/status", headers=auth_headers)
    assert resp.status_code == 200
    item = resp.json()["sources"][0]
    assert item["active"] is False
    assert item["health"]["status"] == "inactive"

    resp = client.put("/admin/sources/status", json={"sourceId": 999, "active": True}, headers=auth_headers)
    assert resp.status_code == 404


def test_rss_feed_crud(client, auth_headers):
    payload = {"name": "Feed", "url": "https://feed.example.com", "rssUrls": ["https://feed.example.com/rss"]}
    resp = client.post("/admin/rss-feeds", json=payload, headers=auth_headers)
    assert resp.status_code == 201
    feed = resp.json()["source"]
    assert feed["categories"] == ["general"]
    assert feed["language"] == "en"

    assert client.post("/admin/rss-feeds", json=payload, headers=auth_headers).status_code == 409
    assert client.post("/admin/rss-feeds", json={"name": "x", "url": "y", "rssUrls": []}, headers=auth_headers).status_code == 400

    resp = client.put("/admin/rss-feeds", json={"id": feed["id"], "language": "te"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["source"]["language"] == "te"

    resp = client.get("/admin/rss-feeds", headers=auth_headers)
    assert [f["id"] for f in resp.json()["rssFeeds"]] == [feed["id"]]

    assert client.delete("/admin/rss-feeds", headers=auth_headers).status_code == 400
    assert client.delete(f"/admin/rss-feeds?id={feed['id']}", headers=auth_headers).status_code == 200
    assert client.delete(f"/admin/rss-feeds?id={feed['id']}", headers=auth_headers).status_code == 404


REGISTRY = {
    "en": {
        "general": [
            {"name": "Alpha", "url": "https://alpha.example.com", "rssUrls": ["https://alpha.example.com/rss"]},
            {"name": "Beta", "url": "https://beta.example.com", "rssUrls": ["https://beta.example.com/rss"]},
        ],
    },
    "te": {
        "politics": [
            {"name": "Gamma", "url": "https://gamma.example.com", "rssUrls": ["https://gamma.example.com/rss"]},
        ],
    },
}


def test_load_registry_skips_existing_feeds(client, auth_headers, db):
    # one feed already present by url, so it must not be duplicated
    _create(client, auth_headers, name="Alpha (existing)", url="https://alpha.example.com")

    resp = client.post("/admin/rss-feeds/load", json=REGISTRY, headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert (body["loaded"], body["skipped"], body["failed"], body["total"]) == (2, 1, 0, 3)

    db.expire_all()
    assert db.query(Source).filter(Source.url == "https://alpha.example.com").count() == 1
    gamma = db.query(Source).filter(Source.name == "Gamma").one()
    assert gamma.language == "te"
    assert gamma.categories == ["politics"]

    # loading again is a no-op
    body = client.post("/admin/rss-feeds/load", json=REGISTRY, headers=auth_headers).json()
    assert (body["loaded"], body["skipped"]) == (0, 3)


def test_load_registry_from_file(client, auth_headers, tmp_path, monkeypatch):
    path = tmp_path / "feeds.json"
    path.write_text(json.dumps(REGISTRY), encoding="utf-8")
    monkeypatch.setattr(settings, "RSS_FEEDS_FILE", str(path))

    resp = client.post("/admin/rss-feeds/load", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["loaded"] == 3


def test_load_registry_missing_file(client, auth_headers, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "RSS_FEEDS_FILE", str(tmp_path / "missing.json"))
    resp = client.post("/admin/rss-feeds/load", headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_load_invalid_registry(client, auth_headers):
    resp = client.post("/admin/rss-feeds/load", json={"en": {"general": [{"url": "no name"}]}}, headers=auth_headers)
    assert resp.status_code == 400


def test_source_status_ignores_legacy_reset_flag(client, auth_headers, db):
    source_id = _create(client, auth_headers).json()["source"]["id"]

    resp = client.put(
        "/admin/sources/status",
        json={"sourceId": source_id, "resetErrors": True},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    db.expire_all()
    assert db.query(Source).filter(Source.id == source_id).one().active is True
