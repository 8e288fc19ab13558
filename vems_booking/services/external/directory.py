"""
Directory service client: read-by-id lookups of patients, facilities,
contract services and practitioners.
"""

import logging
from typing import Any, Dict, Optional

from ...config import ExternalAPIConfig, get_settings
from ...core.exceptions import DirectoryLookupError, DirectoryNotFoundError, ExternalAPIError
from ...core.models import ContractServiceRecord, FacilityRecord, PatientRecord, PractitionerRecord
from .client import ApiClient, NotFoundResponse

logger = logging.getLogger(__name__)


class DirectoryService:
    """Looks up directory records by reference id."""

    def __init__(self, config: Optional[ExternalAPIConfig] = None):
        self.config = config or ExternalAPIConfig.from_settings(get_settings())
        self.client = ApiClient(
            self.config.directory_base_url,
            timeout=self.config.directory_timeout,
            headers=self.config.directory_headers(),
        )

    async def _get(self, kind: str, path: str, ref: str) -> Dict[str, Any]:
        if not ref:
            raise DirectoryNotFoundError(f"Empty {kind} reference")
        try:
            return await self.client._make_request("GET", self.client.url(path))
        except NotFoundResponse as e:
            raise DirectoryNotFoundError(f"{kind} {ref} not found") from e
        except ExternalAPIError as e:
            logger.warning("Directory lookup of %s %s failed: %s", kind, ref, e)
            raise DirectoryLookupError(f"Failed to look up {kind} {ref}: {e}") from e

    async def get_patient(self, patient_id: str) -> PatientRecord:
        data = await self._get("patient", f"patients/{patient_id}", patient_id)
        return self._parse(PatientRecord, data, "patient", patient_id)

    async def get_facility(self, facility_id: str) -> FacilityRecord:
        data = await self._get("facility", f"facilities/{facility_id}", facility_id)
        return self._parse(FacilityRecord, data, "facility", facility_id)

    async def get_contract_service(self, contract_service_id: str) -> ContractServiceRecord:
        data = await self._get(
            "contract service", f"contract-services/{contract_service_id}", contract_service_id
        )
        return self._parse(ContractServiceRecord, data, "contract service", contract_service_id)

    async def get_practitioner(self, practitioner_id: str) -> PractitionerRecord:
        data = await self._get("practitioner", f"practitioners/{practitioner_id}", practitioner_id)
        return self._parse(PractitionerRecord, data, "practitioner", practitioner_id)

    @staticmethod
    def _parse(model, data: Dict[str, Any], kind: str, ref: str):
        try:
            return model.from_api_response(data)
        except ValueError as e:
            raise DirectoryLookupError(f"Malformed {kind} record for {ref}") from e
