"""
Directory records (patients, facilities, contract services, practitioners).

The directory API wraps records as ``{"message": ..., "data": {...}}``; the
``from_api_response`` constructors accept either the envelope or the bare
record.
"""

from decimal import Decimal
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


def _unwrap(data: Dict[str, Any]) -> Dict[str, Any]:
    inner = data.get("data") if isinstance(data, dict) else None
    return inner if isinstance(inner, dict) else data


class PatientRecord(BaseModel):
    """Patient as held by the directory."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    phone: Optional[str] = None
    identification_no: Optional[str] = None
    identification_type: Optional[str] = None
    sha_number: Optional[str] = None
    gender: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> "PatientRecord":
        return cls.model_validate(_unwrap(data))


class FacilityRecord(BaseModel):
    """Health facility as held by the directory."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    fr_code: Optional[str] = None
    phone: Optional[str] = None
    keph_level: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> "FacilityRecord":
        return cls.model_validate(_unwrap(data))


class ContractServiceRecord(BaseModel):
    """A catalog service offered under a vendor contract, with its revenue split."""

    model_config = ConfigDict(extra="ignore")

    id: str
    code: str
    name: str
    tariff: Decimal
    sha_rate: Optional[Decimal] = None
    facility_share: Decimal = Decimal("0")
    vendor_share: Decimal = Decimal("0")
    vendor_id: Optional[str] = None
    equipment_id: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> "ContractServiceRecord":
        record = dict(_unwrap(data))
        # Nested shape: {"service": {"code", "name", "sha_rate"}, "revenue": {...}}
        service = record.pop("service", None)
        if isinstance(service, dict):
            for key in ("code", "name", "sha_rate"):
                record.setdefault(key, service.get(key))
        revenue = record.pop("revenue", None)
        if isinstance(revenue, dict):
            record.setdefault("facility_share", revenue.get("facility_share"))
            record.setdefault("vendor_share", revenue.get("vendor_share"))
        return cls.model_validate({k: v for k, v in record.items() if v is not None})


class PractitionerRecord(BaseModel):
    """Practitioner assignable to a booked service."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    phone: Optional[str] = None
    cadre: Optional[str] = Field(default=None, description="Professional cadre, e.g. radiographer")

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> "PractitionerRecord":
        return cls.model_validate(_unwrap(data))
