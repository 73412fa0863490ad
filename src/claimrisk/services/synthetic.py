"""Synthetic labeled claims for demos and tests."""

from __future__ import annotations

import csv
from datetime import date, timedelta
from pathlib import Path
from typing import List, Sequence

import numpy as np

from claimrisk.models.domain import ClaimRecord, LabeledClaim

PAYERS = ("AETNA", "BCBS", "CIGNA", "MEDICARE", "UHC")
PROCEDURES = ("99213", "99214", "99215", "20610", "93000", "J1040")
DIAGNOSES = ("E11.9", "I10", "J44.9", "M54.5", "Z00.00", "M17.11")
PLACES_OF_SERVICE = ("11", "21", "22")

CSV_COLUMNS = [
    "claim_id",
    "service_date",
    "submission_date",
    "payer_id",
    "procedure_codes",
    "diagnosis_codes",
    "billed_amount",
    "place_of_service",
    "payment_date",
    "denied",
    "paid_amount",
]


def denial_threshold(amounts: np.ndarray, denial_rate: float) -> float:
    """Billed amount above which the top `denial_rate` share of claims fall."""
    return float(np.quantile(amounts, 1.0 - denial_rate))


def generate_claims(
    n: int,
    seed: int = 7,
    denial_rate: float = 0.1,
    start: date = date(2024, 1, 2),
) -> List[LabeledClaim]:
    """
    Claims whose denial label is a deterministic function of billed amount.

    Denied iff billed_amount > threshold, with the threshold set so that
    `denial_rate` of the claims are denied. All other fields are noise.
    """
    rng = np.random.default_rng(seed)
    amounts = np.round(rng.lognormal(mean=5.0, sigma=0.6, size=n), 2)
    threshold = denial_threshold(amounts, denial_rate)

    rows: List[LabeledClaim] = []
    for i in range(n):
        service = start + timedelta(days=int(rng.integers(0, 365)))
        submission = service + timedelta(days=int(rng.integers(0, 20)))
        n_proc = int(rng.integers(1, 4))
        n_diag = int(rng.integers(1, 4))
        denied = int(amounts[i] > threshold)
        payment = None if denied else submission + timedelta(days=int(rng.integers(7, 45)))
        claim = ClaimRecord(
            claim_id=f"SYN-{seed}-{i:06d}",
            service_date=service,
            submission_date=submission,
            payer_id=str(rng.choice(PAYERS)),
            procedure_codes=tuple(str(p) for p in rng.choice(PROCEDURES, size=n_proc, replace=False)),
            diagnosis_codes=tuple(str(d) for d in rng.choice(DIAGNOSES, size=n_diag, replace=False)),
            billed_amount=float(amounts[i]),
            place_of_service=str(rng.choice(PLACES_OF_SERVICE)),
            payment_date=payment,
        )
        paid = None if denied else round(float(amounts[i]) * 0.8, 2)
        rows.append(LabeledClaim(claim=claim, denied=denied, paid_amount=paid))
    return rows


def write_claims_csv(rows: Sequence[LabeledClaim], path: str | Path) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        for r in rows:
            c = r.claim
            writer.writerow(
                {
                    "claim_id": c.claim_id,
                    "service_date": c.service_date.isoformat(),
                    "submission_date": c.submission_date.isoformat(),
                    "payer_id": c.payer_id,
                    "procedure_codes": ";".join(c.procedure_codes),
                    "diagnosis_codes": ";".join(c.diagnosis_codes),
                    "billed_amount": f"{c.billed_amount:.2f}",
                    "place_of_service": c.place_of_service or "",
                    "payment_date": c.payment_date.isoformat() if c.payment_date else "",
                    "denied": r.denied,
                    "paid_amount": "" if r.paid_amount is None else f"{r.paid_amount:.2f}",
                }
            )
    return out
