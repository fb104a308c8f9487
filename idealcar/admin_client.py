"""Client for the admin panel.

Holds the panel's editing state (feature tags, picked files, which
record is being edited) separately from the collections it manages;
nothing reaches the API until a form is submitted.
"""
import logging
import math
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import requests

from idealcar.public_client import ApiClientError, check_response

logger = logging.getLogger(__name__)

CAR_FORM_FIELDS = (
    "dealerId", "category", "make", "model", "year", "price", "mileage", "transmission",
    "fuel", "engine", "color", "condition", "doors", "seats", "description",
)
BLOG_FORM_FIELDS = ("title", "excerpt", "fullContent", "readTime", "author", "category")
DEALER_FORM_FIELDS = ("name", "email", "phone", "location", "description", "status")


def format_file_size(size: int) -> str:
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    i = min(int(math.floor(math.log(size, 1024))), len(units) - 1)
    return f"{round(size / 1024 ** i, 2):g} {units[i]}"


class FeatureTags:
    """Ordered, de-duplicated tag list edited one entry at a time."""

    def __init__(self, tags=None):
        self.items: list[str] = []
        for tag in tags or []:
            self.add(tag)

    def add(self, tag: str) -> bool:
        tag = (tag or "").strip()
        if not tag or tag in self.items:
            return False
        self.items.append(tag)
        return True

    def remove(self, index: int) -> None:
        if 0 <= index < len(self.items):
            del self.items[index]

    def clear(self) -> None:
        self.items = []

    def load(self, value) -> None:
        """Accept either a list or the comma separated form stored by older records."""
        if isinstance(value, str):
            value = value.split(",")
        self.items = []
        for tag in value or []:
            self.add(tag)

    def joined(self) -> str:
        return ",".join(self.items)

    def __len__(self):
        return len(self.items)


@dataclass
class SelectedFile:
    path: Path
    content_type: str
    size: int

    @property
    def name(self) -> str:
        return self.path.name

    def describe(self) -> dict:
        return {"name": self.name, "size": format_file_size(self.size)}


@dataclass
class SelectedFiles:
    files: list[SelectedFile] = field(default_factory=list)

    def select(self, *paths) -> None:
        """Replace the selection, like picking files in a file input again."""
        self.files = []
        for p in paths:
            p = Path(p)
            content_type = mimetypes.guess_type(p.name)[0] or "application/octet-stream"
            self.files.append(SelectedFile(p, content_type, p.stat().st_size))

    def clear(self) -> None:
        self.files = []

    def listing(self) -> list[dict]:
        return [f.describe() for f in self.files]

    def multipart(self, field_name: str) -> list[tuple]:
        return [(field_name, (f.name, f.path.read_bytes(), f.content_type)) for f in self.files]

    def __len__(self):
        return len(self.files)


def car_stats(cars: list[dict]) -> dict:
    total = len(cars)
    images = sum(len(c.get("images") or []) for c in cars)
    avg = round(sum(c.get("price") or 0 for c in cars) / total) if total else 0
    return {"totalCars": total, "totalImages": images, "avgPrice": avg}


class AdminClient:
    def __init__(self, api_base: str = "http://localhost:3000", token: str | None = None,
                 session=None, timeout: float = 30):
        self.api_url = f"{api_base.rstrip('/')}/api"
        self.session = session or requests.Session()
        self.timeout = timeout
        self.token = token
        self.features = FeatureTags()
        self.files = SelectedFiles()
        self.editing_id: Optional[int] = None
        self.editing_post_id: Optional[int] = None
        self.editing_dealer_id: Optional[int] = None

    # -------- auth ----------
    def _headers(self) -> dict:
        if not self.token:
            raise ApiClientError("Please login first", 401)
        return {"Authorization": f"Bearer {self.token}"}

    def login(self, password: str) -> str:
        resp = self.session.post(f"{self.api_url}/admin/login", json={"password": password},
                                 timeout=self.timeout)
        self.token = check_response(resp)["token"]
        return self.token

    def logout(self) -> None:
        if self.token:
            try:
                check_response(self.session.post(f"{self.api_url}/admin/logout",
                                                 headers=self._headers(), timeout=self.timeout))
            except ApiClientError as e:
                # an expired token is already gone server side
                logger.info("Logout: %s", e)
        self.token = None
        self.reset_form()

    # -------- reads ----------
    def _get(self, path: str):
        return check_response(self.session.get(f"{self.api_url}{path}", timeout=self.timeout))

    def load_cars(self) -> list[dict]:
        return self._get("/cars") or []

    def load_dealers(self) -> list[dict]:
        return self._get("/dealers") or []

    def load_posts(self) -> list[dict]:
        return self._get("/blog") or []

    # -------- cars ----------
    def start_edit(self, car_id) -> dict:
        """Prefill the car form for ``car_id`` and switch submit to update."""
        car = next((c for c in self.load_cars() if str(c.get("id")) == str(car_id)), None)
        if car is None:
            raise ApiClientError("Car not found", 404)
        form = {k: car.get(k) for k in CAR_FORM_FIELDS}
        form["category"] = form.get("category") or "Used"
        form["dealerId"] = form.get("dealerId") or ""
        self.features.load(car.get("features"))
        self.files.clear()
        self.editing_id = car["id"]
        return form

    def reset_form(self) -> None:
        self.editing_id = None
        self.editing_post_id = None
        self.editing_dealer_id = None
        self.features.clear()
        self.files.clear()

    def _send(self, path: str, editing_id, data: dict, files: list) -> dict:
        if editing_id is not None:
            method, url = self.session.put, f"{self.api_url}{path}/{editing_id}"
        else:
            method, url = self.session.post, f"{self.api_url}{path}"
        kwargs = {"data": {k: "" if v is None else str(v) for k, v in data.items()},
                  "headers": self._headers(), "timeout": self.timeout}
        if files:
            kwargs["files"] = files
        return check_response(method(url, **kwargs))

    def submit_car(self, form: dict) -> dict:
        data = {k: form[k] for k in CAR_FORM_FIELDS if k in form}
        if len(self.features) or self.editing_id is not None:
            data["features"] = self.features.joined()
        result = self._send("/admin/cars", self.editing_id, data, self.files.multipart("images"))
        logger.info("Car %s", "updated" if self.editing_id is not None else "added")
        self.reset_form()
        return result["car"]

    def delete_car(self, car_id) -> None:
        check_response(self.session.delete(f"{self.api_url}/admin/cars/{car_id}",
                                           headers=self._headers(), timeout=self.timeout))

    # -------- blog ----------
    def start_edit_post(self, post_id) -> dict:
        post = next((p for p in self.load_posts() if str(p.get("id")) == str(post_id)), None)
        if post is None:
            raise ApiClientError("Post not found", 404)
        form = {k: post.get(k) for k in BLOG_FORM_FIELDS}
        form["tags"] = ", ".join(post.get("tags") or [])
        self.files.clear()
        self.editing_post_id = post["id"]
        return form

    def submit_post(self, form: dict) -> dict:
        data = {k: form[k] for k in BLOG_FORM_FIELDS + ("tags",) if k in form}
        result = self._send("/admin/blog", self.editing_post_id, data, self.files.multipart("image"))
        self.reset_form()
        return result["post"]

    def delete_post(self, post_id) -> None:
        check_response(self.session.delete(f"{self.api_url}/admin/blog/{post_id}",
                                           headers=self._headers(), timeout=self.timeout))

    # -------- dealers ----------
    def start_edit_dealer(self, dealer_id) -> dict:
        dealer = check_response(self.session.get(f"{self.api_url}/dealers/{dealer_id}",
                                                 timeout=self.timeout))
        self.editing_dealer_id = dealer["id"]
        return {k: dealer.get(k) for k in DEALER_FORM_FIELDS}

    def submit_dealer(self, form: dict, logo=None, banner=None) -> dict:
        data = {k: form[k] for k in DEALER_FORM_FIELDS if k in form}
        files = []
        for name, path in (("logo", logo), ("banner", banner)):
            if path is not None:
                picked = SelectedFiles()
                picked.select(path)
                files += picked.multipart(name)
        result = self._send("/admin/dealers", self.editing_dealer_id, data, files)
        self.reset_form()
        return result["dealer"]

    def deactivate_dealer(self, dealer_id) -> None:
        check_response(self.session.delete(f"{self.api_url}/admin/dealers/{dealer_id}",
                                           headers=self._headers(), timeout=self.timeout))
