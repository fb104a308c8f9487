import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from idealcar.admin_auth import AdminSessionGuard, SessionStore, require_admin
from idealcar.backend_settings import Settings, settings
from idealcar.db import Collections, RecordStore, build_store
from idealcar.exceptions import (
    ApiError, NotFound, RateLimited, Unauthorized, ValidationFailed, api_error_handler,
    http_error_handler, request_validation_handler, unhandled_error_handler,
)
from idealcar.forms import blog_fields, dealer_fields, vehicle_fields
from idealcar.logging_config import setup_logging
from idealcar.models import DEFAULT_BLOG_IMAGE, BlogPost, ContactMessage, Dealer, LoginRequest, Vehicle
from idealcar.rate_limit import SlidingWindowLimiter, get_ip, login_rate_limit
from idealcar.uploads import URL_PREFIX, UploadHandler
from idealcar.validators import FieldError, required, to_bool, valid_email, valid_phone

logger = logging.getLogger(__name__)

router = APIRouter()


def create_app(
    config: Settings | None = None,
    store: RecordStore | None = None,
    sessions: SessionStore | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    config = config or settings
    app = FastAPI(title=config.APP_NAME)

    app.state.settings = config
    app.state.clock = clock
    app.state.db = Collections(store if store is not None else build_store(config), clock)
    app.state.guard = AdminSessionGuard(
        config.ADMIN_PASSWORD, config.ADMIN_TOKEN_TTL_SECONDS, sessions, clock
    )
    app.state.uploads = UploadHandler(config.UPLOAD_DIR, config.MAX_UPLOAD_BYTES)
    app.state.api_limiter = SlidingWindowLimiter(
        config.RATE_LIMIT_MAX_REQUESTS, config.RATE_LIMIT_WINDOW_SECONDS
    )
    app.state.login_limiter = SlidingWindowLimiter(
        config.LOGIN_RATE_LIMIT_MAX, config.RATE_LIMIT_WINDOW_SECONDS
    )

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler(config.is_development))

    @app.middleware("http")
    async def _log_and_limit(request: Request, call_next):
        if request.url.path.startswith("/api/"):
            try:
                app.state.api_limiter.hit(get_ip(request))
            except RateLimited as exc:
                logger.warning("Rate limit hit by %s on %s", get_ip(request), request.url.path)
                return JSONResponse(status_code=exc.status_code, content=exc.body(), headers=exc.headers)
        response = await call_next(request)
        logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    Path(config.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    app.mount(URL_PREFIX, StaticFiles(directory=config.UPLOAD_DIR), name="uploads")
    app.include_router(router)
    return app


# -------- helpers ----------
def _db(request: Request) -> Collections:
    return request.app.state.db


def _now(request: Request) -> datetime:
    return datetime.fromtimestamp(request.app.state.clock(), timezone.utc)


def _record_id(value: str) -> int | None:
    """Path ids are numeric; anything else simply matches nothing."""
    value = value.strip()
    return int(value) if value.isascii() and value.isdigit() else None


def _find(collection, record_id: str, label: str):
    rid = _record_id(record_id)
    record = collection.get(rid) if rid is not None else None
    if record is None:
        raise NotFound(f"{label} not found")
    return record


async def read_submission(request: Request):
    """Fields of an admin write: multipart, url-encoded or a JSON object."""
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            data = await request.json()
        except ValueError:
            raise ValidationFailed([FieldError("body", "Invalid JSON body")])
        if not isinstance(data, dict):
            raise ValidationFailed([FieldError("body", "JSON body must be an object")])
        return data
    return await request.form()


def _files(payload, key: str) -> list:
    return payload.getlist(key) if hasattr(payload, "getlist") else []


def _flag(payload, key: str) -> bool:
    raw = payload.get(key)
    return raw is not None and to_bool(raw)


# -------- public API used by the site ----------
@router.get("/")
def index(request: Request):
    db = _db(request)
    return {
        "message": request.app.state.settings.APP_NAME,
        "endpoints": {
            "cars": "/api/cars",
            "blog": "/api/blog",
            "dealers": "/api/dealers",
            "contact": "/api/contact",
            "adminLogin": "/api/admin/login",
        },
        "totals": {
            "cars": len(db.vehicles.records),
            "blogPosts": len(db.blog_posts.records),
            "dealers": len(db.dealers.records),
        },
    }


@router.get("/api/cars")
def list_cars(request: Request):
    return [c.to_json() for c in _db(request).vehicles.all()]


@router.get("/api/cars/{car_id}")
def get_car(request: Request, car_id: str):
    return _find(_db(request).vehicles, car_id, "Car").to_json()


@router.get("/api/blog")
def list_blog_posts(request: Request):
    return [p.to_json() for p in _db(request).blog_posts.all()]


@router.get("/api/blog/{post_id}")
def get_blog_post(request: Request, post_id: str):
    return _find(_db(request).blog_posts, post_id, "Post").to_json()


@router.get("/api/dealers")
def list_dealers(request: Request):
    return [d.to_json() for d in _db(request).dealers.where(lambda d: d.status == "active")]


@router.get("/api/dealers/{dealer_id}")
def get_dealer(request: Request, dealer_id: str):
    return _find(_db(request).dealers, dealer_id, "Dealer").to_json()


@router.get("/api/dealers/{dealer_id}/cars")
def list_dealer_cars(request: Request, dealer_id: str):
    db = _db(request)
    dealer = _find(db.dealers, dealer_id, "Dealer")
    key = str(dealer.id)
    return [c.to_json() for c in db.vehicles.where(lambda c: str(c.dealer_id) == key)]


@router.post("/api/contact")
def submit_contact(request: Request, msg: ContactMessage):
    errors = (
        required("name", msg.name, "Name")
        + required("email", msg.email, "Email")
        + required("message", msg.message, "Message")
        + valid_email("email", msg.email)
        + valid_phone("phone", msg.phone)
    )
    if errors:
        raise ValidationFailed(errors)
    reference = "IC" + str(int(request.app.state.clock() * 1000))[-8:]
    logger.info(
        "Contact form submission %s from %s <%s> phone=%s subject=%r: %s",
        reference, msg.name, msg.email, msg.phone, msg.subject, msg.message,
    )
    return {
        "success": True,
        "message": "Thank you for contacting us! We'll respond within 24 hours.",
        "reference": reference,
    }


# -------- admin auth ----------
@router.post("/api/admin/login", dependencies=[Depends(login_rate_limit)])
def admin_login(request: Request, body: LoginRequest):
    if not body.password:
        raise ValidationFailed([FieldError("password", "Password required")])
    guard: AdminSessionGuard = request.app.state.guard
    if not guard.check_password(body.password):
        logger.warning("Failed admin login from %s", get_ip(request))
        raise Unauthorized("Invalid password")
    token = guard.issue()
    logger.info("Admin login from %s", get_ip(request))
    return {
        "success": True,
        "token": token,
        "expiresIn": guard.ttl_seconds,
        "message": "Login successful",
    }


@router.post("/api/admin/logout")
def admin_logout(request: Request, token: str = Depends(require_admin)):
    request.app.state.guard.revoke(token)
    return {"success": True}


# -------- admin: cars ----------
@router.post("/api/admin/cars", dependencies=[Depends(require_admin)])
async def admin_car_create(request: Request):
    payload = await read_submission(request)
    values = vehicle_fields(payload, today=_now(request).date())
    uploads: UploadHandler = request.app.state.uploads
    pending = await uploads.prepare(
        _files(payload, "images"), request.app.state.settings.MAX_VEHICLE_IMAGES, "images"
    )
    db = _db(request)
    car = Vehicle(
        id=db.vehicles.next_id(),
        images=await run_in_threadpool(uploads.store, pending, "images"),
        created_at=_now(request).isoformat(),
        **values,
    )
    await run_in_threadpool(db.vehicles.add, car)
    logger.info("New car added: %s %s (ID: %s)", car.make, car.model, car.id)
    return {"success": True, "car": car.to_json()}


@router.put("/api/admin/cars/{car_id}", dependencies=[Depends(require_admin)])
async def admin_car_update(request: Request, car_id: str):
    db = _db(request)
    car = _find(db.vehicles, car_id, "Car")
    payload = await read_submission(request)
    values = vehicle_fields(payload, partial=True, today=_now(request).date())
    uploads: UploadHandler = request.app.state.uploads
    pending = await uploads.prepare(
        _files(payload, "images"), request.app.state.settings.MAX_VEHICLE_IMAGES, "images"
    )
    replaced: list[str] = []
    if pending:
        replaced = car.images
        values["images"] = await run_in_threadpool(uploads.store, pending, "images")
    elif _flag(payload, "remove_images"):
        replaced = car.images
        values["images"] = []
    updated = car.model_copy(update=values)
    await run_in_threadpool(db.vehicles.replace, updated)
    await run_in_threadpool(uploads.discard, replaced)
    logger.info("Car updated: %s (fields: %s)", car.id, ", ".join(sorted(values)) or "none")
    return {"success": True, "car": updated.to_json()}


@router.delete("/api/admin/cars/{car_id}", dependencies=[Depends(require_admin)])
def admin_car_delete(request: Request, car_id: str):
    db = _db(request)
    rid = _record_id(car_id)
    car = db.vehicles.remove(rid) if rid is not None else None
    if car is None:
        raise NotFound("Car not found")
    request.app.state.uploads.discard(car.images)
    logger.info("Car deleted: %s", car.id)
    return {"success": True}


# -------- admin: blog ----------
def _with_content(post: BlogPost) -> BlogPost:
    if not post.full_content:
        post.full_content = post.excerpt
    return post


@router.post("/api/admin/blog", dependencies=[Depends(require_admin)])
async def admin_blog_create(request: Request):
    payload = await read_submission(request)
    values = blog_fields(payload)
    uploads: UploadHandler = request.app.state.uploads
    pending = await uploads.prepare(_files(payload, "image"), 1, "image")
    stored = await run_in_threadpool(uploads.store, pending, "image")
    if stored:
        values["image"] = stored[0]
    db = _db(request)
    post = _with_content(BlogPost(id=db.blog_posts.next_id(), date=_now(request).date().isoformat(), **values))
    await run_in_threadpool(db.blog_posts.add, post)
    logger.info("New blog post created: %s (ID: %s)", post.title, post.id)
    return {"success": True, "post": post.to_json()}


@router.put("/api/admin/blog/{post_id}", dependencies=[Depends(require_admin)])
async def admin_blog_update(request: Request, post_id: str):
    db = _db(request)
    post = _find(db.blog_posts, post_id, "Post")
    payload = await read_submission(request)
    values = blog_fields(payload, partial=True)
    uploads: UploadHandler = request.app.state.uploads
    pending = await uploads.prepare(_files(payload, "image"), 1, "image")
    replaced = None
    if pending:
        replaced = post.image
        values["image"] = (await run_in_threadpool(uploads.store, pending, "image"))[0]
    elif _flag(payload, "remove_image"):
        replaced = post.image
        values["image"] = DEFAULT_BLOG_IMAGE
    updated = _with_content(post.model_copy(update=values))
    await run_in_threadpool(db.blog_posts.replace, updated)
    await run_in_threadpool(uploads.discard, [replaced])
    logger.info("Blog post updated: %s", post.id)
    return {"success": True, "post": updated.to_json()}


@router.delete("/api/admin/blog/{post_id}", dependencies=[Depends(require_admin)])
def admin_blog_delete(request: Request, post_id: str):
    db = _db(request)
    rid = _record_id(post_id)
    post = db.blog_posts.remove(rid) if rid is not None else None
    if post is None:
        raise NotFound("Post not found")
    request.app.state.uploads.discard([post.image])
    logger.info("Blog post deleted: %s", post.id)
    return {"success": True}


# -------- admin: dealers ----------
@router.post("/api/admin/dealers", dependencies=[Depends(require_admin)])
async def admin_dealer_create(request: Request):
    payload = await read_submission(request)
    values = dealer_fields(payload)
    uploads: UploadHandler = request.app.state.uploads
    logo = await uploads.prepare(_files(payload, "logo"), 1, "logo")
    banner = await uploads.prepare(_files(payload, "banner"), 1, "banner")
    for field, pending in (("logo", logo), ("banner", banner)):
        stored = await run_in_threadpool(uploads.store, pending, field)
        values[field] = stored[0] if stored else None
    db = _db(request)
    dealer = Dealer(id=db.dealers.next_id(), created_at=_now(request).isoformat(), **values)
    await run_in_threadpool(db.dealers.add, dealer)
    logger.info("New dealer added: %s (ID: %s)", dealer.name, dealer.id)
    return {"success": True, "dealer": dealer.to_json()}


@router.put("/api/admin/dealers/{dealer_id}", dependencies=[Depends(require_admin)])
async def admin_dealer_update(request: Request, dealer_id: str):
    db = _db(request)
    dealer = _find(db.dealers, dealer_id, "Dealer")
    payload = await read_submission(request)
    values = dealer_fields(payload, partial=True)
    uploads: UploadHandler = request.app.state.uploads
    logo = await uploads.prepare(_files(payload, "logo"), 1, "logo")
    banner = await uploads.prepare(_files(payload, "banner"), 1, "banner")
    replaced = []
    for field, pending in (("logo", logo), ("banner", banner)):
        if pending:
            replaced.append(getattr(dealer, field))
            values[field] = (await run_in_threadpool(uploads.store, pending, field))[0]
        elif _flag(payload, f"remove_{field}"):
            replaced.append(getattr(dealer, field))
            values[field] = None
    updated = dealer.model_copy(update=values)
    await run_in_threadpool(db.dealers.replace, updated)
    await run_in_threadpool(uploads.discard, replaced)
    logger.info("Dealer updated: %s", dealer.id)
    return {"success": True, "dealer": updated.to_json()}


@router.delete("/api/admin/dealers/{dealer_id}", dependencies=[Depends(require_admin)])
def admin_dealer_delete(request: Request, dealer_id: str):
    # soft delete
    db = _db(request)
    dealer = _find(db.dealers, dealer_id, "Dealer")
    updated = dealer.model_copy(update={"status": "inactive"})
    db.dealers.replace(updated)
    logger.info("Dealer deactivated: %s", dealer.id)
    return {"success": True, "dealer": updated.to_json()}


setup_logging(settings.LOG_LEVEL, json_format=not settings.is_development)
app = create_app()


def main():
    import uvicorn

    db: Collections = app.state.db
    logger.info("=" * 50)
    logger.info("%s", settings.APP_NAME)
    logger.info("Server: http://localhost:%s", settings.PORT)
    logger.info("Uploads: http://localhost:%s%s", settings.PORT, URL_PREFIX)
    logger.info("Store: %s", settings.STORE_BACKEND)
    logger.info("Total cars: %d", len(db.vehicles.records))
    logger.info("Total blog posts: %d", len(db.blog_posts.records))
    logger.info("Total dealers: %d", len(db.dealers.records))
    logger.info("=" * 50)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    main()
