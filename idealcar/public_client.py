"""Client for the public site: listings, search filters, blog and contact.

Listings are fetched once and every filter change is recomputed from the
full set locally; the API itself never filters.
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote, urlencode

import requests

from idealcar.validators import EMAIL_RE, PHONE_RE

logger = logging.getLogger(__name__)

WHATSAPP_NUMBER = "275551234567"
CONTACT_EMAIL = "sales@idealcar.co.za"
PLACEHOLDER_IMAGE = (
    "data:image/svg+xml;utf8,<svg xmlns=\"http://www.w3.org/2000/svg\" width=\"400\" height=\"300\">"
    "<rect width=\"400\" height=\"300\" fill=\"%23f0f0f0\"/>"
    "<text x=\"200\" y=\"150\" font-family=\"Arial\" font-size=\"20\" text-anchor=\"middle\" "
    "fill=\"%23666\">No Image</text></svg>"
)


class ApiClientError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ContactFormError(ValueError):
    pass


def check_response(resp) -> object:
    """Return the decoded body, raising ApiClientError on a non-2xx answer."""
    try:
        data = resp.json()
    except ValueError:
        data = None
    if not 200 <= resp.status_code < 300:
        message = None
        if isinstance(data, dict):
            message = data.get("error") or data.get("message")
        raise ApiClientError(message or f"HTTP error! status: {resp.status_code}", resp.status_code)
    return data


def format_zar(amount) -> str:
    """R250 000 style rand amounts; missing or zero prices read R0."""
    try:
        value = round(float(amount or 0))
    except (TypeError, ValueError):
        value = 0
    if not value:
        return "R0"
    return "R" + f"{value:,}".replace(",", " ")


@dataclass
class ListingFilter:
    make: str = ""
    model: str = ""
    max_price: Optional[float] = None
    min_year: Optional[int] = None
    transmission: str = ""
    fuel: str = ""

    def matches(self, car: dict) -> bool:
        if self.make and self.make.lower() not in str(car.get("make", "")).lower():
            return False
        if self.model and self.model.lower() not in str(car.get("model", "")).lower():
            return False
        if self.max_price is not None and (car.get("price") or 0) > self.max_price:
            return False
        if self.min_year is not None and (car.get("year") or 0) < self.min_year:
            return False
        if self.transmission and car.get("transmission") != self.transmission:
            return False
        if self.fuel and car.get("fuel") != self.fuel:
            return False
        return True


def filter_listings(cars: list[dict], criteria: ListingFilter) -> list[dict]:
    return [c for c in cars if criteria.matches(c)]


@dataclass
class ContactForm:
    name: str
    email: str
    phone: str
    message: str
    subject: str = ""

    def check(self) -> None:
        """The site's own checks, run before anything is sent."""
        if not (self.name and self.email and self.phone and self.message):
            raise ContactFormError("Please fill in all required fields")
        if not EMAIL_RE.match(self.email.strip()):
            raise ContactFormError("Please enter a valid email address")
        if not PHONE_RE.match(re.sub(r"\s", "", self.phone)):
            raise ContactFormError("Please enter a valid South African phone number")


def car_name(car: dict) -> str:
    return f"{car.get('year', '')} {car.get('make', '')} {car.get('model', '')}".strip()


def whatsapp_link(name: str, price: str) -> str:
    message = (
        f"Hi IdealCar,\n\nI'm interested in the {name} listed for {price}.\n\n"
        "Please provide:\n1. Availability\n2. Service history\n3. Additional photos\n"
        "4. Test drive availability\n\nThank you!"
    )
    return f"https://wa.me/{WHATSAPP_NUMBER}?text={quote(message, safe='')}"


def email_link(name: str, price: str, to: str = CONTACT_EMAIL) -> str:
    query = urlencode(
        {
            "subject": f"Inquiry about: {name}",
            "body": f"Hi IdealCar,\n\nI'm interested in the {name} listed for {price}.\n\nThank you!",
        },
        quote_via=quote,
    )
    return f"mailto:{to}?{query}"


def share_links(title: str, url: str) -> dict[str, str]:
    return {
        "facebook": f"https://www.facebook.com/sharer/sharer.php?u={quote(url, safe='')}",
        "whatsapp": f"https://wa.me/?text={quote(f'{title} {url}', safe='')}",
        "twitter": "https://twitter.com/intent/tweet?"
        + urlencode({"text": title, "url": url}, quote_via=quote),
    }


class PublicSiteClient:
    def __init__(self, api_base: str = "http://localhost:3000", session=None, timeout: float = 10):
        self.api_base = api_base.rstrip("/")
        self.api_url = f"{self.api_base}/api"
        self.session = session or requests.Session()
        self.timeout = timeout
        self.all_cars: list[dict] = []
        self.current_cars: list[dict] = []
        self.criteria = ListingFilter()

    def _get(self, path: str):
        return check_response(self.session.get(f"{self.api_url}{path}", timeout=self.timeout))

    def load_cars(self) -> list[dict]:
        logger.debug("Fetching cars from %s/cars", self.api_url)
        cars = self._get("/cars") or []
        for car in cars:
            car["priceZAR"] = format_zar(car.get("price"))
        self.all_cars = cars
        self.current_cars = list(cars)
        self.criteria = ListingFilter()
        return self.current_cars

    def apply_filters(self, criteria: ListingFilter | None = None, **changes) -> list[dict]:
        """Recompute the visible listings from scratch.

        Either pass a whole ``ListingFilter`` or keyword changes to the
        current one (``client.apply_filters(make="toyota")``).
        """
        if criteria is None:
            criteria = ListingFilter(**{**self.criteria.__dict__, **changes})
        self.criteria = criteria
        self.current_cars = filter_listings(self.all_cars, criteria)
        return self.current_cars

    def clear_filters(self) -> list[dict]:
        return self.apply_filters(ListingFilter())

    def image_urls(self, car: dict) -> list[str]:
        """Carousel slides for a listing, or the placeholder when it has none."""
        images = car.get("images") or []
        if not images:
            return [PLACEHOLDER_IMAGE]
        return [img if img.startswith(("http://", "https://")) else f"{self.api_base}{img}"
                for img in images]

    def results_summary(self) -> str:
        return f"Showing {len(self.current_cars)} of {len(self.all_cars)} vehicles"

    def load_blog_posts(self) -> list[dict]:
        return self._get("/blog") or []

    def get_blog_post(self, post_id) -> dict:
        return self._get(f"/blog/{post_id}")

    def submit_contact(self, form: ContactForm) -> dict:
        form.check()
        resp = self.session.post(
            f"{self.api_url}/contact",
            json={
                "name": form.name,
                "email": form.email,
                "phone": form.phone,
                "subject": form.subject,
                "message": form.message,
            },
            timeout=self.timeout,
        )
        return check_response(resp)
