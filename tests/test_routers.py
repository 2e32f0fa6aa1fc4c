from models.store import Store


def _url(store, path):
    return f"/api/stores/{store.id}{path}"


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_auth_guards(client, store):
    assert client.get(_url(store, "/templates")).status_code == 401
    assert client.get(_url(store, "/templates"), headers={"x-test-uid": "intruder"}).status_code == 403


def test_compiled_template_with_render_list(client, store, owner_headers):
    res = client.get(_url(store, "/templates/compiled/homepage"), headers=owner_headers)

    assert res.status_code == 200
    body = res.json()
    assert body["source"] == "theme-default"
    assert [s["type"] for s in body["renderSections"]] == [
        "header", "hero", "featured-collection", "rich-text", "footer",
    ]

    missing = client.get(_url(store, "/templates/compiled/blog"), headers=owner_headers)
    assert missing.status_code == 404


def test_materialize_then_edit_sections(client, store, owner_headers):
    res = client.post(_url(store, "/templates/materialize/product"), headers=owner_headers)
    assert res.status_code == 200
    template = res.json()
    assert [s["sectionType"] for s in template["sections"]] == ["product-main", "related-products"]

    added = client.post(_url(store, f"/templates/{template['id']}/sections"), headers=owner_headers,
                        json={"section_type": "reviews", "position": 0})
    assert added.status_code == 200

    resolved = client.get(_url(store, "/templates/resolve/product"), headers=owner_headers).json()
    assert resolved["source"] == "entity"
    assert [s["sectionType"] for s in resolved["template"]["sections"]] == [
        "reviews", "product-main", "related-products",
    ]

    deleted = client.delete(_url(store, f"/templates/{template['id']}"), headers=owner_headers)
    assert deleted.status_code == 409


def test_bad_section_payload_is_400(client, store, owner_headers):
    template = client.post(_url(store, "/templates"), headers=owner_headers,
                           json={"template_type": "page", "is_default": True}).json()
    res = client.post(_url(store, f"/templates/{template['id']}/sections"), headers=owner_headers,
                      json={"section_type": "Not Valid"})
    assert res.status_code == 400
    assert "error" in res.json()


def test_apply_preset(client, store, owner_headers):
    res = client.post(_url(store, "/presets/fashion/apply"), headers=owner_headers, json={})
    assert res.status_code == 200
    assert sorted(res.json()["templatesCreated"]) == ["homepage", "product"]

    bad = client.post(_url(store, "/presets/Bad_ID/apply"), headers=owner_headers, json={})
    assert bad.status_code == 400
    unknown = client.post(_url(store, "/presets/unknown/apply"), headers=owner_headers, json={})
    assert unknown.status_code == 404


def test_activate_and_restore_backup(client, store, owner_headers):
    client.put(_url(store, "/theme/settings"), headers=owner_headers,
               json={"settings": {"colors": {"primary": "#123456"}}})

    activated = client.post(_url(store, "/theme/activate"), headers=owner_headers, json={"theme_code": "minimal"})
    assert activated.status_code == 200
    backup_id = activated.json()["backupId"]

    listed = client.get(_url(store, "/backups"), headers=owner_headers).json()["backups"]
    assert [b["id"] for b in listed] == [backup_id]

    restored = client.post(_url(store, f"/backups/{backup_id}/restore"), headers=owner_headers, json={})
    assert restored.status_code == 200
    assert restored.json()["themeCode"] == "base"


def test_theme_file_history_endpoints(client, store, owner_headers):
    for content in ("a", "b"):
        res = client.put(_url(store, "/theme-files"), headers=owner_headers,
                         json={"theme_code": "base", "file_path": "assets/app.css", "content": content})
        assert res.status_code == 200

    history = client.get(_url(store, "/theme-files/history"), headers=owner_headers,
                         params={"theme_code": "base", "file_path": "assets/app.css"}).json()["history"]
    assert [h["version"] for h in history] == [2, 1]

    restored = client.post(_url(store, "/theme-files/restore"), headers=owner_headers,
                           json={"theme_code": "base", "file_path": "assets/app.css", "history_id": history[1]["id"]})
    assert restored.status_code == 200
    assert restored.json()["preRestore"]["changeType"] == "pre-restore"
    current = client.get(_url(store, "/theme-files"), headers=owner_headers,
                         params={"theme_code": "base", "file_path": "assets/app.css"})
    assert current.json()["content"] == "a"

    escape = client.put(_url(store, "/theme-files"), headers=owner_headers,
                        json={"theme_code": "base", "file_path": "../escape.css", "content": "x"})
    assert escape.status_code == 400


def test_catalog_admin_only(client, themes_dir):
    assert client.post("/api/themes", json={"code": "base"}, headers={"x-test-uid": "owner-1"}).status_code == 403
    res = client.post("/api/themes", json={"code": "base"}, headers={"x-test-uid": "admin"})
    assert res.status_code == 200
    assert res.json()["code"] == "base"


def test_create_store_endpoint(client, db):
    res = client.post("/api/stores", headers={"x-test-uid": "owner-9"},
                      json={"name": "Nine", "subdomain": "nine"})
    assert res.status_code == 200
    store_id = res.json()["store"]["id"]
    assert db.query(Store).filter(Store.id == store_id).one().owner_uid == "owner-9"
