"""Load contractor profiles from a CSV export into the directory database."""

import csv
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from remonta.search.geocoding import Geocoder, geocode_contractor_address
from remonta.search.locations import normalize_state
from remonta.web.database import ContractorProfile

logger = logging.getLogger(__name__)

# CRM export headers -> ContractorProfile columns
CSV_COLUMNS = {
    "zohoContactId": "zoho_contact_id",
    "firstName": "first_name",
    "lastName": "last_name",
    "email": "email",
    "phone": "phone",
    "gender": "gender",
    "city": "city",
    "state": "state",
    "postalZipCode": "postal_zip_code",
    "latitude": "latitude",
    "longitude": "longitude",
    "titleRole": "title_role",
    "yearsOfExperience": "years_of_experience",
    "qualificationsAndCertifications": "qualifications_and_certifications",
    "languageSpoken": "language_spoken",
    "hasVehicleAccess": "has_vehicle_access",
    "aboutYou": "about_you",
    "funFact": "fun_fact",
    "hobbiesAndInterests": "hobbies_and_interests",
    "whatMakesBusinessUnique": "what_makes_business_unique",
    "additionalInformation": "additional_information",
    "profilePicture": "profile_picture",
}

TRUE_VALUES = ("true", "t", "yes", "y", "1")


@dataclass
class ImportSummary:
    created: int = 0
    updated: int = 0
    skipped: int = 0
    geocoded: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.created + self.updated


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name.strip()).lower()


def _column_for(header: str) -> Optional[str]:
    header = header.strip()
    if header in CSV_COLUMNS:
        return CSV_COLUMNS[header]
    snake = _snake(header)
    if snake in CSV_COLUMNS.values():
        return snake
    return None


def _to_float(value: str) -> Optional[float]:
    try:
        return float(value)
    except ValueError:
        return None


def _to_int(value: str) -> Optional[int]:
    try:
        return int(float(value))
    except ValueError:
        return None


def clean_row(raw: Dict[str, str]) -> Dict[str, object]:
    """
    Map one CSV row to ContractorProfile column values.

    Empty cells become None; numbers, booleans and state names are coerced.
    Unknown columns are ignored.
    """
    row: Dict[str, object] = {}
    for header, value in raw.items():
        if header is None:
            continue
        column = _column_for(header)
        if column is None:
            continue

        value = (value or "").strip()
        if not value:
            row[column] = "" if column in ("first_name", "last_name") else None
        elif column in ("latitude", "longitude"):
            row[column] = _to_float(value)
        elif column == "years_of_experience":
            row[column] = _to_int(value)
        elif column == "has_vehicle_access":
            row[column] = value.lower() in TRUE_VALUES
        elif column == "state":
            row[column] = normalize_state(value) or value
        elif column == "email":
            row[column] = value.lower()
        else:
            row[column] = value
    return row


def read_contractor_csv(path: str) -> List[Dict[str, object]]:
    """Read and clean every row of a contractor CSV export."""
    with open(Path(path), newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        return [clean_row(raw) for raw in reader]


def _find_profile(session: Session, zoho_contact_id: Optional[str], email: str) -> Optional[ContractorProfile]:
    """Existing profile for a CRM contact, matched on contact id before email."""
    if zoho_contact_id:
        profile = session.execute(
            select(ContractorProfile).where(ContractorProfile.zoho_contact_id == zoho_contact_id)
        ).scalar_one_or_none()
        if profile is not None:
            return profile
    return session.execute(
        select(ContractorProfile).where(ContractorProfile.email == email)
    ).scalar_one_or_none()


def import_contractors(
    session_factory: Callable[[], Session],
    rows: Iterable[Dict[str, object]],
    geocoder: Optional[Geocoder] = None,
) -> ImportSummary:
    """
    Upsert contractor rows keyed on CRM contact id, then email.

    Rows without an email are skipped. Each row is committed on its own, so
    a row that conflicts with another contractor's email or contact id is
    recorded in ``errors`` without losing the rest of the batch. When a
    geocoder is given, rows missing coordinates are geocoded from city,
    state and postcode.
    """
    summary = ImportSummary()
    now = datetime.utcnow()

    with session_factory() as session:
        for index, row in enumerate(rows, start=1):
            email = row.get("email")
            if not email:
                summary.skipped += 1
                summary.errors.append(f"Row {index}: missing email")
                continue

            if geocoder is not None and (row.get("latitude") is None or row.get("longitude") is None):
                coordinate = geocode_contractor_address(
                    geocoder, row.get("city"), row.get("state"), row.get("postal_zip_code")
                )
                if coordinate is not None:
                    row = dict(row, latitude=coordinate.latitude, longitude=coordinate.longitude)
                    summary.geocoded += 1

            profile = _find_profile(session, row.get("zoho_contact_id"), email)
            created = profile is None

            if created:
                profile = ContractorProfile(**row)
                session.add(profile)
            else:
                for column, value in row.items():
                    setattr(profile, column, value)
                profile.deleted_at = None
            profile.last_synced_at = now

            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                logger.warning("Skipping contractor row %d (%s): %s", index, email, e.orig)
                summary.skipped += 1
                summary.errors.append(f"Row {index}: conflicts with an existing contractor ({email})")
                continue

            if created:
                summary.created += 1
            else:
                summary.updated += 1

    logger.info(
        "Imported contractors: %d created, %d updated, %d skipped, %d geocoded",
        summary.created,
        summary.updated,
        summary.skipped,
        summary.geocoded,
    )
    return summary
