"""ViaCEP postal code adapter implementation."""

from typing import Any, Dict, Optional

from pydantic import BaseModel

from cepfinder.domain.models import CanonicalAddress, ProviderName

from .base import BaseAdapter
from .exceptions import AdapterNotFoundError


class ViaCEPResponse(BaseModel):
    """Body of GET /ws/{cep}/json/. Unknown fields are ignored."""

    cep: str
    logradouro: Optional[str] = None
    complemento: Optional[str] = None
    bairro: Optional[str] = None
    localidade: str
    uf: str
    ibge: Optional[str] = None
    gia: Optional[str] = None
    ddd: Optional[str] = None
    siafi: Optional[str] = None


class ViaCEPAdapter(BaseAdapter):
    """Adapter for ViaCEP.

    ViaCEP answers a well-formed but unknown postal code with HTTP 200 and
    ``{"erro": true}`` instead of a 404, so that body is checked before the
    schema is applied.

    API Details:
        Endpoint: https://viacep.com.br/ws/{postal_code}/json/
        Method: GET
        Authentication: None (public)
        Response: JSON object with cep, logradouro, complemento, bairro,
            localidade, uf, ibge, gia, ddd, siafi
    """

    PROVIDER_NAME = ProviderName.VIACEP.value
    DEFAULT_BASE_URL = "https://viacep.com.br"
    RESPONSE_MODEL = ViaCEPResponse

    def build_url(self, postal_code: str) -> str:
        return f"{self.base_url}/ws/{postal_code}/json/"

    def _check_payload(self, payload: Dict[str, Any]) -> None:
        # The service has sent both true and "true" here
        if str(payload.get("erro", "")).lower() == "true":
            raise AdapterNotFoundError("ViaCEP reported the postal code as not found")

    def _to_address(self, payload: ViaCEPResponse) -> CanonicalAddress:
        return CanonicalAddress(
            postal_code=payload.cep,
            street=payload.logradouro,
            neighborhood=payload.bairro,
            city=payload.localidade,
            region=payload.uf,
            source=ProviderName.VIACEP,
        )
