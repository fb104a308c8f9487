from pathlib import Path

from conftest import PNG
from idealcar.models import DEFAULT_BLOG_IMAGE


def post_form(**overrides):
    data = {"title": "Financing your first car", "excerpt": "What banks look at."}
    data.update(overrides)
    return data


def test_seeded_post_is_listed(client):
    posts = client.get("/api/blog").json()
    assert [p["id"] for p in posts] == [1]
    assert client.get("/api/blog/1").json()["author"] == "DirkL"


def test_create_post_defaults(client, auth):
    r = client.post("/api/admin/blog", data=post_form(tags="finance, tips, finance"), headers=auth)
    assert r.status_code == 200
    post = r.json()["post"]
    assert post["fullContent"] == "What banks look at."
    assert post["image"] == DEFAULT_BLOG_IMAGE
    assert post["readTime"] == "5 min"
    assert post["author"] == "DirkL"
    assert post["category"] == "General"
    assert post["tags"] == ["finance", "tips"]
    assert post["date"] == "2025-10-09"


def test_full_content_keeps_markup(client, auth):
    html = "<h2>Deposit</h2><p>Aim for 10%.</p>"
    post = client.post("/api/admin/blog", data=post_form(fullContent=html),
                       headers=auth).json()["post"]
    assert post["fullContent"] == html


def test_title_and_excerpt_required(client, auth):
    r = client.post("/api/admin/blog", data={"title": "Only a title"}, headers=auth)
    assert r.status_code == 400
    assert r.json()["error"] == "Excerpt is required"


def test_update_post_image_and_fields(client, auth, settings):
    post = client.post("/api/admin/blog", data=post_form(),
                       files={"image": ("cover.png", PNG, "image/png")}, headers=auth).json()["post"]
    assert post["image"].startswith("/uploads/")
    cover = Path(settings.UPLOAD_DIR) / Path(post["image"]).name

    r = client.put(f"/api/admin/blog/{post['id']}", data={"author": "Sipho", "remove_image": "1"},
                   headers=auth)
    updated = r.json()["post"]
    assert updated["author"] == "Sipho"
    assert updated["title"] == post["title"]
    assert updated["image"] == DEFAULT_BLOG_IMAGE
    assert not cover.exists()


def test_blank_full_content_falls_back_to_excerpt(client, auth):
    post = client.post("/api/admin/blog", data=post_form(fullContent="<p>Long</p>"),
                       headers=auth).json()["post"]
    updated = client.put(f"/api/admin/blog/{post['id']}", data={"fullContent": ""},
                         headers=auth).json()["post"]
    assert updated["fullContent"] == post["excerpt"]


def test_blog_image_must_be_single(client, auth):
    files = [("image", ("a.png", PNG, "image/png")), ("image", ("b.png", PNG, "image/png"))]
    r = client.post("/api/admin/blog", data=post_form(), files=files, headers=auth)
    assert r.status_code == 400
    assert r.json()["error"] == "Too many files for 'image' (maximum 1)"


def test_delete_post(client, auth):
    assert client.delete("/api/admin/blog/1", headers=auth).json() == {"success": True}
    assert client.get("/api/blog/1").status_code == 404
    r = client.delete("/api/admin/blog/1", headers=auth)
    assert r.status_code == 404
    assert r.json()["error"] == "Post not found"
