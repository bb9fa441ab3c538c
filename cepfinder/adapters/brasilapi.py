"""BrasilAPI postal code adapter implementation."""

from typing import Optional

from pydantic import BaseModel

from cepfinder.domain.models import CanonicalAddress, ProviderName

from .base import BaseAdapter


class BrasilAPIResponse(BaseModel):
    """Body of GET /api/cep/v1/{cep}. Unknown fields are ignored."""

    cep: str
    state: str
    city: str
    neighborhood: Optional[str] = None
    street: Optional[str] = None
    service: Optional[str] = None


class BrasilAPIAdapter(BaseAdapter):
    """Adapter for BrasilAPI.

    API Details:
        Endpoint: https://brasilapi.com.br/api/cep/v1/{postal_code}
        Method: GET
        Authentication: None (public)
        Response: JSON object with cep, state, city, neighborhood, street, service
    """

    PROVIDER_NAME = ProviderName.BRASILAPI.value
    DEFAULT_BASE_URL = "https://brasilapi.com.br"
    RESPONSE_MODEL = BrasilAPIResponse

    def build_url(self, postal_code: str) -> str:
        return f"{self.base_url}/api/cep/v1/{postal_code}"

    def _to_address(self, payload: BrasilAPIResponse) -> CanonicalAddress:
        return CanonicalAddress(
            postal_code=payload.cep,
            street=payload.street,
            neighborhood=payload.neighborhood,
            city=payload.city,
            region=payload.state,
            source=ProviderName.BRASILAPI,
        )
