"""Structural validation of raw claim payloads."""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from claimrisk.errors import ClaimValidationError
from claimrisk.models.domain import ClaimRecord

REQUIRED_FIELDS = (
    "claim_id",
    "service_date",
    "payer_id",
    "procedure_codes",
    "billed_amount",
)


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise ValueError(f"unsupported date value {value!r}")


def _parse_codes(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        parts = value.replace(";", ",").split(",")
    else:
        parts = list(value)
    return tuple(str(p).strip() for p in parts if str(p).strip())


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_claim(payload: Mapping[str, Any] | ClaimRecord) -> ClaimRecord:
    """
    Build a ClaimRecord from a raw payload or raise ClaimValidationError.

    Collects every field problem before raising so callers can report them
    together. `submission_date` defaults to the service date.
    """
    if isinstance(payload, ClaimRecord):
        payload = {
            "claim_id": payload.claim_id,
            "service_date": payload.service_date,
            "submission_date": payload.submission_date,
            "payer_id": payload.payer_id,
            "procedure_codes": payload.procedure_codes,
            "diagnosis_codes": payload.diagnosis_codes,
            "billed_amount": payload.billed_amount,
            "place_of_service": payload.place_of_service,
            "payment_date": payload.payment_date,
            "attributes": payload.attributes,
        }

    errors: Dict[str, str] = {}
    for name in REQUIRED_FIELDS:
        if _is_missing(payload.get(name)):
            errors[name] = "field is required"

    dates: Dict[str, Optional[date]] = {}
    for name in ("service_date", "submission_date", "payment_date"):
        raw = payload.get(name)
        if _is_missing(raw):
            dates[name] = None
            continue
        try:
            dates[name] = _parse_date(raw)
        except ValueError:
            errors[name] = "malformed date, expected YYYY-MM-DD"
            dates[name] = None

    procedure_codes = _parse_codes(payload.get("procedure_codes"))
    if "procedure_codes" not in errors and not procedure_codes:
        errors["procedure_codes"] = "at least one procedure code is required"

    billed_amount: Optional[float] = None
    if "billed_amount" not in errors:
        try:
            billed_amount = float(payload["billed_amount"])
        except (TypeError, ValueError):
            errors["billed_amount"] = "must be a number"
        else:
            if not math.isfinite(billed_amount):
                errors["billed_amount"] = "must be a finite number"
            elif billed_amount < 0:
                errors["billed_amount"] = "must be non-negative"

    service_date = dates["service_date"]
    submission_date = dates["submission_date"] or service_date
    if service_date and dates["submission_date"] and dates["submission_date"] < service_date:
        errors["submission_date"] = "cannot be before service_date"
    if service_date and dates["payment_date"] and dates["payment_date"] < service_date:
        errors["payment_date"] = "cannot be before service_date"

    attributes = payload.get("attributes") or {}
    if not isinstance(attributes, Mapping):
        errors["attributes"] = "must be an object"
        attributes = {}

    if errors:
        raise ClaimValidationError(errors)

    place = payload.get("place_of_service")
    return ClaimRecord(
        claim_id=str(payload["claim_id"]).strip(),
        service_date=service_date,
        submission_date=submission_date,
        payer_id=str(payload["payer_id"]).strip(),
        procedure_codes=procedure_codes,
        diagnosis_codes=_parse_codes(payload.get("diagnosis_codes")),
        billed_amount=billed_amount,
        place_of_service=None if _is_missing(place) else str(place).strip(),
        payment_date=dates["payment_date"],
        attributes={str(k): str(v) for k, v in attributes.items() if v is not None},
    )
