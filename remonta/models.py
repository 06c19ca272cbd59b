"""Data models for the contractor directory search."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class BoundingBox:
    """Rectangular lat/lng range used as a cheap pre-filter."""

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, latitude: float, longitude: float) -> bool:
        return (
            self.min_lat <= latitude <= self.max_lat
            and self.min_lon <= longitude <= self.max_lon
        )


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class ContractorRecord:
    """Read-only projection of a contractor profile row."""

    id: str
    zoho_contact_id: Optional[str] = None

    # Contact
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None

    # Location
    city: Optional[str] = None
    state: Optional[str] = None
    postal_zip_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    # Professional
    title_role: Optional[str] = None
    years_of_experience: Optional[int] = None
    qualifications_and_certifications: Optional[str] = None
    language_spoken: Optional[str] = None
    has_vehicle_access: Optional[bool] = None

    # Narrative
    about_you: Optional[str] = None
    fun_fact: Optional[str] = None
    hobbies_and_interests: Optional[str] = None
    what_makes_business_unique: Optional[str] = None
    additional_information: Optional[str] = None

    profile_picture: Optional[str] = None

    # Audit
    last_synced_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def coordinate(self) -> Optional[Coordinate]:
        """Coordinate of the contractor, or None unless both parts are set."""
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(self.latitude, self.longitude)

    @classmethod
    def from_orm_row(cls, row: Any) -> "ContractorRecord":
        """Build a record from a ``ContractorProfile`` ORM instance."""
        return cls(
            id=row.id,
            zoho_contact_id=row.zoho_contact_id,
            first_name=row.first_name or "",
            last_name=row.last_name or "",
            email=row.email,
            phone=row.phone,
            gender=row.gender,
            city=row.city,
            state=row.state,
            postal_zip_code=row.postal_zip_code,
            latitude=row.latitude,
            longitude=row.longitude,
            title_role=row.title_role,
            years_of_experience=row.years_of_experience,
            qualifications_and_certifications=row.qualifications_and_certifications,
            language_spoken=row.language_spoken,
            has_vehicle_access=row.has_vehicle_access,
            about_you=row.about_you,
            fun_fact=row.fun_fact,
            hobbies_and_interests=row.hobbies_and_interests,
            what_makes_business_unique=row.what_makes_business_unique,
            additional_information=row.additional_information,
            profile_picture=row.profile_picture,
            last_synced_at=row.last_synced_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict:
        """Convert to the camelCase shape used by API responses."""
        return {
            "id": self.id,
            "zohoContactId": self.zoho_contact_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "gender": self.gender,
            "city": self.city,
            "state": self.state,
            "postalZipCode": self.postal_zip_code,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "titleRole": self.title_role,
            "yearsOfExperience": self.years_of_experience,
            "qualificationsAndCertifications": self.qualifications_and_certifications,
            "languageSpoken": self.language_spoken,
            "hasVehicleAccess": self.has_vehicle_access,
            "aboutYou": self.about_you,
            "funFact": self.fun_fact,
            "hobbiesAndInterests": self.hobbies_and_interests,
            "whatMakesBusinessUnique": self.what_makes_business_unique,
            "additionalInformation": self.additional_information,
            "profilePicture": self.profile_picture,
            "lastSyncedAt": _iso(self.last_synced_at),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass(frozen=True)
class RankedContractor:
    """A contractor with its distance from the search point."""

    record: ContractorRecord
    distance_km: float

    def to_dict(self) -> dict:
        data = self.record.to_dict()
        data["distance"] = self.distance_km
        return data
