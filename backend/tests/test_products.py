"""
Catalog and upload tests.

Verifies:
- Pagination envelope of the public catalog
- Title uniqueness (409)
- Image files move from the temp dir on create and are deleted on replace/delete
- Falsy price in an update takes the product off sale
"""

import io
import os

from weblarek.models import Product

from conftest import make_product


def _stage_upload(app, name: str) -> str:
    """Put a file in the temp dir as if it had just been uploaded."""
    temp_dir = os.path.join(app.config["PUBLIC_DIR"], app.config["UPLOAD_PATH_TEMP"])
    os.makedirs(temp_dir, exist_ok=True)
    with open(os.path.join(temp_dir, name), "wb") as fh:
        fh.write(b"\x89PNG")
    return f"/{app.config['UPLOAD_PATH']}/{name}"


def _stored_path(app, file_name: str) -> str:
    return os.path.join(app.config["PUBLIC_DIR"], file_name.lstrip("/"))


def _payload(title: str, file_name: str, price=100) -> dict:
    return {
        "title": title,
        "category": "другое",
        "description": "A product",
        "price": price,
        "image": {"fileName": file_name, "originalName": "orig.png"},
    }


class TestCatalog:

    def test_pagination(self, client, db_session):
        for i in range(7):
            make_product(db_session, f"Item {i}", 10 * i)

        resp = client.get("/product")
        body = resp.get_json()
        assert resp.status_code == 200
        assert len(body["items"]) == 5
        assert body["pagination"] == {
            "totalProducts": 7,
            "totalPages": 2,
            "currentPage": 1,
            "pageSize": 5,
        }

        second = client.get("/product?page=2").get_json()
        assert [p["title"] for p in second["items"]] == ["Item 5", "Item 6"]

    def test_bad_page(self, client, db_session):
        assert client.get("/product?page=zero").status_code == 400
        assert client.get("/product?page=99999999999999999999").status_code == 400

    def test_product_shape(self, client, product_unpriced):
        item = client.get("/product").get_json()["items"][0]
        assert item["price"] is None
        assert item["image"] == {"fileName": "/images/stub.png", "originalName": "stub.png"}


class TestProductWrites:

    def test_create_moves_image(self, app, client, admin_headers):
        file_name = _stage_upload(app, "create.png")

        resp = client.post("/product", json=_payload("Fresh", file_name), headers=admin_headers)
        assert resp.status_code == 201
        assert resp.get_json()["title"] == "Fresh"

        assert os.path.exists(_stored_path(app, file_name))
        temp_dir = os.path.join(app.config["PUBLIC_DIR"], app.config["UPLOAD_PATH_TEMP"])
        assert not os.path.exists(os.path.join(temp_dir, "create.png"))

    def test_duplicate_title(self, client, admin_headers, product_10):
        resp = client.post("/product", json=_payload(product_10.title, "/images/x.png"),
                           headers=admin_headers)
        assert resp.status_code == 409
        assert resp.get_json() == {"error": "Product with this title already exists"}

    def test_missing_required_fields(self, client, admin_headers):
        resp = client.post("/product", json={"title": "Only title"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_short_title(self, client, admin_headers):
        resp = client.post("/product", json=_payload("A", "/images/x.png"), headers=admin_headers)
        assert resp.status_code == 400

    def test_update_without_price_takes_off_sale(self, client, admin_headers, product_10):
        resp = client.patch(f"/product/{product_10.id}", json={"description": "New text"},
                            headers=admin_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["description"] == "New text"
        assert body["price"] is None

    def test_update_replaces_image(self, app, client, admin_headers, db_session):
        old_name = _stage_upload(app, "old.png")
        created = client.post("/product", json=_payload("Swap", old_name), headers=admin_headers).get_json()
        new_name = _stage_upload(app, "new.png")

        resp = client.patch(
            f"/product/{created['id']}",
            json={"price": 5, "image": {"fileName": new_name, "originalName": "new.png"}},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["price"] == 5
        assert os.path.exists(_stored_path(app, new_name))
        assert not os.path.exists(_stored_path(app, old_name))

    def test_delete_removes_image(self, app, client, admin_headers, db_session):
        file_name = _stage_upload(app, "gone.png")
        created = client.post("/product", json=_payload("Doomed", file_name), headers=admin_headers).get_json()

        resp = client.delete(f"/product/{created['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert db_session.get(Product, created["id"]) is None
        assert not os.path.exists(_stored_path(app, file_name))

    def test_delete_stays_inside_image_dir(self, app, client, admin_headers, db_session):
        outside = os.path.join(app.config["PUBLIC_DIR"], "keep.txt")
        with open(outside, "wb") as fh:
            fh.write(b"keep")
        product = make_product(db_session, "Escape", 10, image="/images/../keep.txt")

        resp = client.delete(f"/product/{product.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert os.path.exists(outside)

    def test_delete_missing(self, client, admin_headers):
        assert client.delete("/product/4242", headers=admin_headers).status_code == 404


class TestUpload:

    def test_upload_to_temp_dir(self, app, client, admin_headers):
        resp = client.post(
            "/upload",
            data={"file": (io.BytesIO(b"\x89PNG"), "photo.png", "image/png")},
            content_type="multipart/form-data",
            headers=admin_headers,
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["originalName"] == "photo.png"
        assert body["fileName"].startswith("/images/")

        stored = os.path.basename(body["fileName"])
        temp_dir = os.path.join(app.config["PUBLIC_DIR"], app.config["UPLOAD_PATH_TEMP"])
        assert os.path.exists(os.path.join(temp_dir, stored))

    def test_rejects_non_images(self, client, admin_headers):
        resp = client.post(
            "/upload",
            data={"file": (io.BytesIO(b"text"), "notes.txt", "text/plain")},
            content_type="multipart/form-data",
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_missing_file(self, client, admin_headers):
        resp = client.post("/upload", data={}, content_type="multipart/form-data",
                           headers=admin_headers)
        assert resp.status_code == 400
