# FILE: curex/scripts/seed_demo.py
"""
Demo data: one pharmacy, a user per role and a small stocked catalogue.
Safe to run twice; existing rows (matched by email / barcode) are skipped.

    python -m curex.scripts.seed_demo --password secret123
"""
from __future__ import annotations

import argparse
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from curex.core.logging import configure_logging
from curex.core.rbac import (
    ROLE_ADMIN,
    ROLE_GOVERNMENT,
    ROLE_INSURANCE,
    ROLE_PATIENT,
    ROLE_PHARMACIST,
)
from curex.core.security import get_password_hash
from curex.db.init_db import init_db
from curex.models.medication import Medication
from curex.models.pharmacy import Pharmacy
from curex.models.role import Role
from curex.models.user import User
from curex.services import inventory_ledger as ledger

logger = logging.getLogger(__name__)

DEMO_PHARMACY = {
    "name": "Pharmacie Centrale Alger",
    "license_number": "PH-ALG-0001",
    "phone": "+213 21 00 00 00",
    "email": "contact@pharmacie-centrale.dz",
    "address_street": "12 Rue Didouche Mourad",
    "address_city": "Alger",
    "address_postal_code": "16000",
    "address_country": "Algeria",
    "delivery_available": True,
    "delivery_fee": Decimal("500"),
    "pickup_available": True,
    "is_verified": True,
}

DEMO_USERS = [
    ("Admin", "CureX", "admin@curex40.com", ROLE_ADMIN),
    ("Amina", "Benali", "pharmacist@curex40.com", ROLE_PHARMACIST),
    ("Karim", "Haddad", "patient@curex40.com", ROLE_PATIENT),
    ("Nadia", "Saidi", "gov@curex40.com", ROLE_GOVERNMENT),
    ("Yacine", "Mansouri", "insurance@curex40.com", ROLE_INSURANCE),
]

# name, generic, category, form, strength, price, stock, rx, barcode
DEMO_MEDICATIONS = [
    ("Doliprane", "Paracetamol", "Analgesic", "tablet", "500mg", "180.00", 120,
     False, "6130000000011"),
    ("Efferalgan", "Paracetamol", "Analgesic", "effervescent tablet", "1g",
     "240.00", 60, False, "6130000000028"),
    ("Augmentin", "Amoxicillin/Clavulanic acid", "Antibiotic", "tablet",
     "1g", "950.00", 25, True, "6130000000035"),
    ("Ventoline", "Salbutamol", "Respiratory", "inhaler", "100mcg", "620.00",
     8, True, "6130000000042"),
    ("Spasfon", "Phloroglucinol", "Antispasmodic", "tablet", "80mg",
     "310.00", 0, False, "6130000000059"),
]


def _user(db: Session, first: str, last: str, email: str, role_name: str,
          password: str, pharmacy_id: Optional[int]) -> User:
    u = db.query(User).filter(User.email == email).first()
    if u:
        return u
    u = User(first_name=first,
             last_name=last,
             email=email,
             password_hash=get_password_hash(password),
             is_active=True,
             pharmacy_id=pharmacy_id if role_name == ROLE_PHARMACIST else None)
    role = db.query(Role).filter(Role.name == role_name).first()
    if role:
        u.roles.append(role)
    db.add(u)
    db.flush()
    logger.info("Created %s user %s", role_name, email)
    return u


def seed_demo(db: Session, password: str) -> Dict[str, Any]:
    pharmacy = (db.query(Pharmacy).filter(
        Pharmacy.license_number == DEMO_PHARMACY["license_number"]).first())
    if not pharmacy:
        pharmacy = Pharmacy(**DEMO_PHARMACY, is_active=True)
        db.add(pharmacy)
        db.flush()

    users: List[User] = [
        _user(db, first, last, email, role, password, pharmacy.id)
        for first, last, email, role in DEMO_USERS
    ]
    pharmacist = users[1]

    created = 0
    for (name, generic, category, form, strength, price, stock, rx,
         barcode) in DEMO_MEDICATIONS:
        if db.query(Medication.id).filter(Medication.barcode == barcode).first():
            continue
        med = Medication(name=name,
                         generic_name=generic,
                         category=category,
                         form=form,
                         strength=strength,
                         price=Decimal(price),
                         stock=0,
                         min_stock=10,
                         requires_prescription=rx,
                         barcode=barcode,
                         expiry_date=date.today() + timedelta(days=540),
                         is_active=True,
                         is_available=False,
                         created_by=pharmacist.id)
        db.add(med)
        db.flush()
        if stock:
            ledger.stock_in(db,
                            med.id,
                            stock,
                            Decimal(price) * Decimal("0.6"),
                            user_id=pharmacist.id,
                            pharmacy_id=pharmacy.id,
                            reference_type=ledger.REF_MANUAL,
                            notes="Opening stock",
                            supplier="Demo supplier")
        created += 1

    db.commit()
    return {
        "pharmacy_id": pharmacy.id,
        "users": [u.email for u in users],
        "medications_created": created,
    }


def _make_db_session(db_uri: Optional[str]) -> Session:
    if db_uri:
        engine = create_engine(db_uri, pool_pre_ping=True, future=True)
        return sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    from curex.db.session import SessionLocal
    return SessionLocal()


def main():
    configure_logging()
    ap = argparse.ArgumentParser(description="Seed CureX40 demo data")
    ap.add_argument("--db-uri", default=None, help="Database URI (defaults to DATABASE_URL)")
    ap.add_argument("--password", default="password123", help="Password for every demo user")
    args = ap.parse_args()

    db = _make_db_session(args.db_uri)
    try:
        init_db(db)
        out = seed_demo(db, args.password)
        logger.info("Demo seed done: %s", out)
    finally:
        db.close()


if __name__ == "__main__":
    main()
