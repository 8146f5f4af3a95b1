import json
import logging
import time
import uuid
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.admin.businesses import (
    CreateBusinessArgs,
    UpdateBusinessArgs,
    create_business,
    list_businesses,
    serialize_business,
    update_business,
)
from app.admin.services import CreateServiceArgs, create_service, list_services, serialize_service
from app.bookings.check_availability import (
    get_available_slots,
    map_validation_error,
    parse_check_availability_args,
)
from app.bookings.create_booking import create_booking, parse_create_booking_args
from app.bookings.find_booking import (
    booking_stats,
    get_booking,
    list_business_bookings,
    list_customer_bookings,
    parse_list_bookings_args,
    serialize_booking,
)
from app.bookings.manage_booking import (
    cancel_booking,
    parse_cancel_booking_args,
    parse_update_booking_status_args,
    update_booking_status,
)
from app.db.locks import DayLockRegistry
from app.db.session import SessionLocal
from app.db.sql_store import SqlAlchemyBookingStore
from app.errors import BookingError


ERROR_STATUS_CODES = {
    "NOT_FOUND": 404,
    "OUT_OF_HOURS": 400,
    "PAST_DATE": 400,
    "POLICY_VIOLATION": 400,
    "CONFLICT": 409,
    "INVALID_TRANSITION": 409,
    "INVALID_STATE": 409,
    "STORAGE_ERROR": 503,
}


def configure_logging() -> logging.Logger:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    return logging.getLogger("bookings.backend")


logger = configure_logging()
app = FastAPI(title="Booking Engine")
day_locks = DayLockRegistry()


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    start_time = time.perf_counter()

    response = await call_next(request)

    duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["x-request-id"] = request_id

    logger.info(
        json.dumps(
            {
                "event": "http_request",
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            }
        )
    )
    return response


def build_booking_store(db) -> SqlAlchemyBookingStore:
    return SqlAlchemyBookingStore(db=db, day_locks=day_locks)


def _booking_error_response(exc: BookingError) -> JSONResponse:
    content: dict[str, Any] = {
        "ok": False,
        "error_code": exc.error_code,
        "human_message": exc.human_message,
    }
    blocking = getattr(exc, "blocking", None)
    if blocking is not None:
        content["data"] = {"blocking_booking_id": blocking.id}
    return JSONResponse(status_code=ERROR_STATUS_CODES.get(exc.error_code, 400), content=content)


def _invalid_args_response(exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"ok": False, **map_validation_error(exc)})


def _system_down_response(action: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error_code": "SYSTEM_DOWN",
            "human_message": f"Temporary issue {action}.",
        },
    )


@app.get("/health")
async def health():
    return JSONResponse(content={"ok": True})


@app.get("/v1/businesses/{business_id}/services/{service_id}/available-slots")
def available_slots(
    business_id: int,
    service_id: int,
    date: str | None = None,
    staff_id: int | None = None,
) -> JSONResponse:
    try:
        args = parse_check_availability_args(
            {
                "business_id": business_id,
                "service_id": service_id,
                "date": date,
                "staff_id": staff_id,
            }
        )
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        slots = get_available_slots(store=build_booking_store(db), args=args)
        return JSONResponse(content={"ok": True, "data": {"date": args.date.isoformat(), "slots": slots}})
    except BookingError as exc:
        return _booking_error_response(exc)
    except Exception:
        logger.exception("Slot lookup failed for business_id=%s service_id=%s", business_id, service_id)
        return _system_down_response("loading available slots")
    finally:
        db.close()


@app.post("/v1/bookings")
def create_booking_endpoint(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_create_booking_args(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        booking = create_booking(store=build_booking_store(db), args=args)
        return JSONResponse(
            status_code=201,
            content={"ok": True, "data": {"booking": serialize_booking(booking)}},
        )
    except BookingError as exc:
        return _booking_error_response(exc)
    except Exception:
        logger.exception("Booking creation failed for business_id=%s", args.business_id)
        return _system_down_response("creating booking")
    finally:
        db.close()


@app.get("/v1/bookings/{booking_id}")
def get_booking_endpoint(booking_id: int) -> JSONResponse:
    db = SessionLocal()
    try:
        booking = get_booking(store=build_booking_store(db), booking_id=booking_id)
        return JSONResponse(content={"ok": True, "data": {"booking": serialize_booking(booking)}})
    except BookingError as exc:
        return _booking_error_response(exc)
    finally:
        db.close()


@app.put("/v1/bookings/{booking_id}/cancel")
def cancel_booking_endpoint(booking_id: int, payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_cancel_booking_args(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        booking = cancel_booking(store=build_booking_store(db), booking_id=booking_id, args=args)
        return JSONResponse(content={"ok": True, "data": {"booking": serialize_booking(booking)}})
    except BookingError as exc:
        return _booking_error_response(exc)
    except Exception:
        logger.exception("Booking cancellation failed for booking_id=%s", booking_id)
        return _system_down_response("cancelling booking")
    finally:
        db.close()


@app.put("/v1/bookings/{booking_id}/status")
def update_booking_status_endpoint(booking_id: int, payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_update_booking_status_args(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        booking = update_booking_status(
            store=build_booking_store(db), booking_id=booking_id, args=args
        )
        return JSONResponse(content={"ok": True, "data": {"booking": serialize_booking(booking)}})
    except BookingError as exc:
        return _booking_error_response(exc)
    except Exception:
        logger.exception("Booking status update failed for booking_id=%s", booking_id)
        return _system_down_response("updating booking status")
    finally:
        db.close()


@app.get("/v1/businesses/{business_id}/bookings")
def business_bookings(
    business_id: int,
    status: str | None = None,
    date: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> JSONResponse:
    try:
        args = parse_list_bookings_args({"status": status, "date": date, "page": page, "limit": limit})
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        data = list_business_bookings(store=build_booking_store(db), business_id=business_id, args=args)
        return JSONResponse(content={"ok": True, "data": data})
    except BookingError as exc:
        return _booking_error_response(exc)
    finally:
        db.close()


@app.get("/v1/businesses/{business_id}/bookings/stats")
def business_booking_stats(business_id: int) -> JSONResponse:
    db = SessionLocal()
    try:
        data = booking_stats(store=build_booking_store(db), business_id=business_id)
        return JSONResponse(content={"ok": True, "data": data})
    except BookingError as exc:
        return _booking_error_response(exc)
    finally:
        db.close()


@app.get("/v1/customers/{customer_id}/bookings")
def customer_bookings(
    customer_id: int,
    status: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> JSONResponse:
    try:
        args = parse_list_bookings_args({"status": status, "page": page, "limit": limit})
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        data = list_customer_bookings(store=build_booking_store(db), customer_id=customer_id, args=args)
        return JSONResponse(content={"ok": True, "data": data})
    except BookingError as exc:
        return _booking_error_response(exc)
    finally:
        db.close()


@app.get("/v1/customers/{customer_id}/bookings/stats")
def customer_booking_stats(customer_id: int) -> JSONResponse:
    db = SessionLocal()
    try:
        data = booking_stats(store=build_booking_store(db), customer_id=customer_id)
        return JSONResponse(content={"ok": True, "data": data})
    except BookingError as exc:
        return _booking_error_response(exc)
    finally:
        db.close()


@app.post("/v1/admin/businesses")
def admin_create_business(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = CreateBusinessArgs.model_validate(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        business = create_business(db=db, args=args)
        return JSONResponse(content={"ok": True, "data": {"business": serialize_business(business)}})
    except ValueError as exc:
        return JSONResponse(
            status_code=409,
            content={
                "ok": False,
                "error_code": "DUPLICATE_EXTERNAL_ID",
                "human_message": str(exc),
            },
        )
    except Exception:
        logger.exception("Business creation failed")
        return _system_down_response("creating business")
    finally:
        db.close()


@app.get("/v1/admin/businesses")
def admin_list_businesses() -> JSONResponse:
    db = SessionLocal()
    try:
        businesses = list_businesses(db=db)
        return JSONResponse(
            content={
                "ok": True,
                "data": {"businesses": [serialize_business(item) for item in businesses]},
            }
        )
    finally:
        db.close()


@app.patch("/v1/admin/businesses/{business_id}")
def admin_update_business(business_id: int, payload: dict[str, Any]) -> JSONResponse:
    try:
        args = UpdateBusinessArgs.model_validate(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        business = update_business(db=db, business_id=business_id, args=args)
        if business is None:
            return JSONResponse(
                status_code=404,
                content={
                    "ok": False,
                    "error_code": "BUSINESS_NOT_FOUND",
                    "human_message": "Business not found.",
                },
            )
        return JSONResponse(content={"ok": True, "data": {"business": serialize_business(business)}})
    except ValueError as exc:
        return JSONResponse(
            status_code=409,
            content={
                "ok": False,
                "error_code": "DUPLICATE_EXTERNAL_ID",
                "human_message": str(exc),
            },
        )
    except Exception:
        logger.exception("Business update failed for business_id=%s", business_id)
        return _system_down_response("updating business")
    finally:
        db.close()


@app.post("/v1/admin/businesses/{business_id}/services")
def admin_create_service(business_id: int, payload: dict[str, Any]) -> JSONResponse:
    try:
        args = CreateServiceArgs.model_validate(payload)
    except ValidationError as exc:
        return _invalid_args_response(exc)

    db = SessionLocal()
    try:
        service = create_service(db=db, business_id=business_id, args=args)
        if service is None:
            return JSONResponse(
                status_code=404,
                content={
                    "ok": False,
                    "error_code": "BUSINESS_NOT_FOUND",
                    "human_message": "Business not found.",
                },
            )
        return JSONResponse(content={"ok": True, "data": {"service": serialize_service(service)}})
    except Exception:
        logger.exception("Service creation failed for business_id=%s", business_id)
        return _system_down_response("creating service")
    finally:
        db.close()


@app.get("/v1/admin/businesses/{business_id}/services")
def admin_list_services(business_id: int) -> JSONResponse:
    db = SessionLocal()
    try:
        services = list_services(db=db, business_id=business_id)
        return JSONResponse(
            content={"ok": True, "data": {"services": [serialize_service(item) for item in services]}}
        )
    finally:
        db.close()
