import pytest

from conftest import ADMIN_PASSWORD, PNG
from idealcar.admin_client import (
    AdminClient, FeatureTags, SelectedFiles, car_stats, format_file_size,
)
from idealcar.public_client import ApiClientError


@pytest.fixture
def admin(client):
    c = AdminClient("http://testserver", session=client)
    c.login(ADMIN_PASSWORD)
    return c


@pytest.mark.parametrize("size, expected", [
    (0, "0 Bytes"),
    (500, "500 Bytes"),
    (1024, "1 KB"),
    (1536, "1.5 KB"),
    (5 * 1024 * 1024, "5 MB"),
])
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_feature_tags():
    tags = FeatureTags()
    assert tags.add(" ABS ")
    assert not tags.add("ABS")
    assert not tags.add("   ")
    tags.add("Sunroof")
    tags.add("Tow bar")
    tags.remove(1)
    assert tags.items == ["ABS", "Tow bar"]
    assert tags.joined() == "ABS,Tow bar"
    tags.load("a, b,a")
    assert tags.items == ["a", "b"]


def test_selected_files(tmp_path):
    photo = tmp_path / "front.png"
    photo.write_bytes(PNG)
    picked = SelectedFiles()
    picked.select(photo)
    assert picked.listing() == [{"name": "front.png", "size": "72 Bytes"}]
    assert picked.multipart("images") == [("images", ("front.png", PNG, "image/png"))]


def test_car_stats():
    cars = [{"price": 100000, "images": ["a", "b"]}, {"price": 200000, "images": []}]
    assert car_stats(cars) == {"totalCars": 2, "totalImages": 2, "avgPrice": 150000}
    assert car_stats([]) == {"totalCars": 0, "totalImages": 0, "avgPrice": 0}


def test_login_failure(client):
    c = AdminClient("http://testserver", session=client)
    with pytest.raises(ApiClientError) as e:
        c.login("wrong")
    assert e.value.status_code == 401
    assert c.token is None
    with pytest.raises(ApiClientError, match="login"):
        c.delete_car(1)


def test_create_then_edit_car(admin, tmp_path):
    photo = tmp_path / "front.png"
    photo.write_bytes(PNG)
    admin.features.add("ABS")
    admin.files.select(photo)
    car = admin.submit_car({"make": "Mazda", "model": "CX-5", "year": "2021", "price": "410000"})
    assert car["features"] == ["ABS"]
    assert len(car["images"]) == 1
    assert admin.editing_id is None
    assert len(admin.features) == 0

    form = admin.start_edit(car["id"])
    assert admin.editing_id == car["id"]
    assert form["make"] == "Mazda"
    assert admin.features.items == ["ABS"]

    form["price"] = 399000
    admin.features.add("Cruise control")
    updated = admin.submit_car(form)
    assert updated["id"] == car["id"]
    assert updated["price"] == 399000
    assert updated["features"] == ["ABS", "Cruise control"]
    assert updated["images"] == car["images"]
    assert len(admin.load_cars()) == 2


def test_start_edit_unknown_car(admin):
    with pytest.raises(ApiClientError):
        admin.start_edit(42)
    assert admin.editing_id is None


def test_delete_car(admin):
    admin.delete_car(1700000000000)
    assert admin.load_cars() == []
    with pytest.raises(ApiClientError) as e:
        admin.delete_car(1700000000000)
    assert e.value.status_code == 404


def test_blog_round_trip(admin):
    post = admin.submit_post({"title": "Winter tyres", "excerpt": "Worth it?", "tags": "tyres"})
    form = admin.start_edit_post(post["id"])
    assert form["tags"] == "tyres"
    form["title"] = "Winter tyres in Gauteng"
    assert admin.submit_post(form)["title"] == "Winter tyres in Gauteng"
    admin.delete_post(post["id"])
    assert [p["id"] for p in admin.load_posts()] == [1]


def test_dealer_round_trip(admin, tmp_path):
    logo = tmp_path / "logo.png"
    logo.write_bytes(PNG)
    dealer = admin.submit_dealer(
        {"name": "Durban Autos", "email": "hi@durbanautos.co.za", "phone": "0311234567"}, logo=logo
    )
    assert dealer["logo"].startswith("/uploads/")
    form = admin.start_edit_dealer(dealer["id"])
    form["location"] = "Durban"
    assert admin.submit_dealer(form)["location"] == "Durban"
    admin.deactivate_dealer(dealer["id"])
    assert [d["id"] for d in admin.load_dealers()] == [1]


def test_logout_clears_token(admin):
    admin.logout()
    assert admin.token is None
