"""
Core data models for the VEMS booking core.
"""

from .booking import (
    Booking,
    BookingRequest,
    BookingService,
    BookingServiceRequest,
    FacilitySummary,
    PatientSummary,
    ServiceInfo,
)
from .directory import ContractServiceRecord, FacilityRecord, PatientRecord, PractitionerRecord
from .otp import ChallengeState, IssuedChallenge, OtpChallenge, subject_ref_for
from .worklist import WorklistBooking, WorklistPage, WorklistQuery, WorklistSummary

__all__ = [
    "Booking",
    "BookingRequest",
    "BookingService",
    "BookingServiceRequest",
    "FacilitySummary",
    "PatientSummary",
    "ServiceInfo",
    "ContractServiceRecord",
    "FacilityRecord",
    "PatientRecord",
    "PractitionerRecord",
    "ChallengeState",
    "IssuedChallenge",
    "OtpChallenge",
    "subject_ref_for",
    "WorklistBooking",
    "WorklistPage",
    "WorklistQuery",
    "WorklistSummary",
]
