# FILE: curex/services/prescriptions.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from curex.core.errors import (
    FieldValidationError,
    InvalidStateError,
    NotFoundError,
)
from curex.models.medication import Medication
from curex.models.pharmacy import Pharmacy
from curex.models.prescription import (
    Prescription,
    PrescriptionItem,
    FILLABLE_STATUSES,
    ITEM_FILLED,
    ITEM_PARTIALLY_FILLED,
    ITEM_PENDING,
    RX_CANCELLED,
    RX_FILLED,
    RX_PARTIALLY_FILLED,
    RX_PENDING,
    RX_STATUSES,
    RX_VERIFIED,
)
from curex.services import inventory_ledger as ledger
from curex.services.cart_pricing import money
from curex.services.id_gen import next_prescription_number

logger = logging.getLogger(__name__)

HEADER_FIELDS = (
    "pharmacy_id",
    "doctor_name",
    "doctor_license",
    "doctor_phone",
    "doctor_address",
    "patient_name",
    "patient_dob",
    "patient_phone",
    "diagnosis",
    "prescribed_date",
    "expiry_date",
    "refills_allowed",
    "is_emergency",
    "is_controlled",
    "special_instructions",
)

ITEM_FIELDS = (
    "medication_name",
    "strength",
    "dosage_form",
    "dosage_instructions",
    "frequency",
    "quantity_prescribed",
    "days_supply",
    "special_instructions",
    "generic_substitution_allowed",
)


@dataclass
class DispenseLine:
    prescription_item_id: int
    quantity_dispensed: int
    pharmacist_notes: Optional[str] = None
    substituted_medication_id: Optional[int] = None
    substitution_reason: Optional[str] = None


def _build_item(db: Session, data: Dict[str, Any]) -> PrescriptionItem:
    item = PrescriptionItem(status=ITEM_PENDING,
                            **{k: data.get(k) for k in ITEM_FIELDS if k in data})
    med_id = data.get("medication_id")
    if med_id:
        med = db.get(Medication, med_id)
        if not med:
            raise NotFoundError(f"Medication {med_id} not found")
        item.medication_id = med.id
        item.unit_price = money(med.price)
        item.total_price = money(med.price) * int(item.quantity_prescribed or 0)
    return item


def create_prescription(db: Session, user, data: Dict[str, Any],
                        items: List[Dict[str, Any]]) -> Prescription:
    if not items:
        raise InvalidStateError("Prescription must list at least one medication")
    rx = Prescription(
        prescription_number=next_prescription_number(db),
        user_id=user.id,
        status=RX_PENDING,
        **{k: data.get(k) for k in HEADER_FIELDS if data.get(k) is not None},
    )
    for it in items:
        rx.items.append(_build_item(db, it))
    db.add(rx)
    db.flush()
    logger.info("Prescription %s uploaded by user=%s", rx.prescription_number,
                user.id)
    return rx


def update_prescription(db: Session,
                        rx: Prescription,
                        data: Dict[str, Any],
                        items: Optional[List[Dict[str, Any]]] = None) -> Prescription:
    if rx.status != RX_PENDING:
        raise InvalidStateError("Prescription cannot be modified at this stage")
    prescribed = data.get("prescribed_date", rx.prescribed_date)
    expiry = data.get("expiry_date", rx.expiry_date)
    if expiry and prescribed and expiry <= prescribed:
        raise FieldValidationError(
            "Validation failed",
            {"expiry_date": [
                "The expiry date must be a date after prescribed date."
            ]})
    for k in HEADER_FIELDS:
        if k in data:
            setattr(rx, k, data[k])
    if items is not None:
        if not items:
            raise InvalidStateError(
                "Prescription must list at least one medication")
        rx.items.clear()
        db.flush()
        for it in items:
            rx.items.append(_build_item(db, it))
    db.flush()
    return rx


def verify_prescription(db: Session,
                        rx: Prescription,
                        user,
                        notes: Optional[str] = None) -> Prescription:
    if rx.status != RX_PENDING:
        raise InvalidStateError("Prescription cannot be verified at this time")
    if rx.is_expired:
        raise InvalidStateError("Prescription has expired")
    rx.status = RX_VERIFIED
    rx.verified_at = datetime.utcnow()
    rx.verified_by = user.id
    rx.verification_notes = notes
    if not rx.pharmacy_id and getattr(user, "pharmacy_id", None):
        rx.pharmacy_id = user.pharmacy_id
    db.flush()
    logger.info("Prescription %s verified by user=%s", rx.prescription_number,
                user.id)
    return rx


def _apply_substitution(db: Session, item: PrescriptionItem,
                        line: DispenseLine) -> None:
    if not item.generic_substitution_allowed:
        raise InvalidStateError(
            f"Substitution is not allowed for {item.medication_name}")
    if not line.substitution_reason:
        raise InvalidStateError("A substitution reason is required")
    sub = db.get(Medication, line.substituted_medication_id)
    if not sub:
        raise NotFoundError(
            f"Medication {line.substituted_medication_id} not found")
    item.substituted_medication_id = sub.id
    item.substitution_reason = line.substitution_reason
    item.unit_price = money(sub.price)
    item.total_price = money(sub.price) * item.quantity_prescribed


def _dispensed_medication_ids(by_id: Dict[int, PrescriptionItem],
                              lines: List[DispenseLine]) -> List[int]:
    ids = []
    for line in lines:
        item = by_id.get(line.prescription_item_id)
        if item is None:
            continue
        if line.substituted_medication_id and item.generic_substitution_allowed:
            ids.append(line.substituted_medication_id)
        elif item.substituted_medication_id or item.medication_id:
            ids.append(item.substituted_medication_id or item.medication_id)
    return ids


def fill_prescription(db: Session, rx: Prescription, user,
                      lines: List[DispenseLine]) -> List[Dict[str, Any]]:
    """
    Dispense quantities against the prescription's items.
    Each line is capped at the item's remaining quantity and taken out of
    stock (the substitute's stock when one is given).
    """
    if rx.status not in FILLABLE_STATUSES:
        raise InvalidStateError("Prescription cannot be filled at this time")
    if rx.is_expired:
        raise InvalidStateError("Prescription has expired")

    by_id = {i.id: i for i in rx.items}
    ledger.lock_medications(db, _dispensed_medication_ids(by_id, lines))
    now = datetime.utcnow()
    filled: List[Dict[str, Any]] = []

    for line in lines:
        item = by_id.get(line.prescription_item_id)
        if item is None:
            raise NotFoundError(
                f"Invalid prescription item ID: {line.prescription_item_id}")
        if item.is_complete:
            raise InvalidStateError(
                f"{item.medication_name} has already been dispensed in full")

        if line.substituted_medication_id:
            _apply_substitution(db, item, line)

        qty = min(int(line.quantity_dispensed), item.remaining_quantity)
        dispensed_med_id = item.substituted_medication_id or item.medication_id
        if dispensed_med_id:
            ledger.stock_out(
                db,
                dispensed_med_id,
                qty,
                user_id=user.id,
                pharmacy_id=rx.pharmacy_id or getattr(user, "pharmacy_id", None),
                reference_type=ledger.REF_PRESCRIPTION,
                reference_id=rx.id,
                notes=f"Prescription {rx.prescription_number}",
            )

        item.quantity_dispensed = (item.quantity_dispensed or 0) + qty
        item.status = ITEM_FILLED if item.is_complete else ITEM_PARTIALLY_FILLED
        item.filled_at = now
        item.filled_by = user.id
        if line.pharmacist_notes:
            item.pharmacist_notes = line.pharmacist_notes

        filled.append({
            "item_id": item.id,
            "medication_name": item.medication_name,
            "quantity_dispensed": qty,
            "status": item.status,
        })

    if all(i.is_complete for i in rx.items):
        rx.status = RX_FILLED
        rx.filled_at = now
        rx.filled_by = user.id
        if rx.pharmacy_id:
            ph = db.get(Pharmacy, rx.pharmacy_id)
            if ph:
                ph.total_prescriptions_filled = (ph.total_prescriptions_filled
                                                 or 0) + 1
    else:
        rx.status = RX_PARTIALLY_FILLED
    db.flush()
    logger.info("Prescription %s -> %s by user=%s", rx.prescription_number,
                rx.status, user.id)
    return filled


def cancel_prescription(db: Session, rx: Prescription, user,
                        reason: str) -> Prescription:
    if rx.status == RX_CANCELLED:
        raise InvalidStateError("Prescription is already cancelled")
    if rx.status == RX_FILLED:
        raise InvalidStateError("A filled prescription cannot be cancelled")
    rx.status = RX_CANCELLED
    rx.cancelled_at = datetime.utcnow()
    rx.cancelled_by = user.id
    rx.cancellation_reason = reason
    db.flush()
    logger.info("Prescription %s cancelled by user=%s", rx.prescription_number,
                user.id)
    return rx


def fill_percentage(rx: Prescription) -> float:
    total = len(rx.items)
    if not total:
        return 0.0
    done = sum(1 for i in rx.items if i.is_complete)
    return round(done / total * 100, 2)


def statistics(q: Query,
               from_date: Optional[date] = None,
               to_date: Optional[date] = None) -> Dict[str, Any]:
    if from_date:
        q = q.filter(Prescription.prescribed_date >= from_date)
    if to_date:
        q = q.filter(Prescription.prescribed_date <= to_date)

    counts = dict(
        q.with_entities(Prescription.status,
                        func.count(Prescription.id)).group_by(
                            Prescription.status).all())
    breakdown = {s: int(counts.get(s, 0)) for s in RX_STATUSES}
    soon = date.today() + timedelta(days=7)

    return {
        "total_prescriptions": sum(breakdown.values()),
        "pending_prescriptions": breakdown[RX_PENDING],
        "verified_prescriptions": breakdown[RX_VERIFIED],
        "filled_prescriptions": breakdown[RX_FILLED] +
        breakdown[RX_PARTIALLY_FILLED],
        "emergency_prescriptions": q.filter(
            Prescription.is_emergency.is_(True)).count(),
        "controlled_prescriptions": q.filter(
            Prescription.is_controlled.is_(True)).count(),
        "expiring_soon": q.filter(
            Prescription.expiry_date.isnot(None),
            Prescription.expiry_date >= date.today(),
            Prescription.expiry_date <= soon,
        ).count(),
        "status_breakdown": breakdown,
    }
