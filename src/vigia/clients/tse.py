"""TSE (Tribunal Superior Eleitoral) DivulgaCandContas client.

Only used to detect when the candidate list of a future election has been
published. The endpoint answers with an error status until then.

Usage:
    from vigia.clients.tse import TSEClient

    async with TSEClient() as client:
        published = await client.election_published(2026, "PE")
"""

import logging

from vigia.clients.base import BaseAsyncClient, TransportError


logger = logging.getLogger(__name__)

TSE_BASE_URL = "https://divulgacandcontas.tse.jus.br/divulga/rest/v1"

# TSE numbers the UFs of its divulgação API; PE is 17
UF_CODES = {
    "AC": 1, "AL": 2, "AP": 3, "AM": 4, "BA": 5, "CE": 6, "DF": 7, "ES": 8,
    "GO": 9, "MA": 10, "MT": 11, "MS": 12, "MG": 13, "PA": 14, "PB": 15,
    "PR": 16, "PE": 17, "PI": 18, "RJ": 19, "RN": 20, "RS": 21, "RO": 22,
    "RR": 23, "SC": 24, "SP": 25, "SE": 26, "TO": 27,
}


class TSEClient(BaseAsyncClient):
    """Async client for the TSE candidate divulgação API.

    Args:
        rate_limit: Max requests per second (default: 2)
    """

    source_name = "tse"

    def __init__(self, rate_limit: int = 2, timeout: float = 30.0) -> None:
        super().__init__(base_url=TSE_BASE_URL, rate_limit=rate_limit, timeout=timeout)

    @staticmethod
    def candidates_path(year: int, uf: str) -> str:
        return f"/eleicao/buscar/{year}/{UF_CODES[uf.upper()]}/candidatos"

    async def election_published(self, year: int, uf: str) -> bool:
        """True once the candidate list for (year, uf) answers successfully.

        An HTTP error status means "not published yet". Network failures
        still raise TransportError, so callers can tell "unavailable" apart
        from "unreachable".
        """
        try:
            await self.head(self.candidates_path(year, uf))
        except TransportError as e:
            if e.status_code is None:
                raise
            logger.debug("Election %d/%s not published (status %d)", year, uf, e.status_code)
            return False
        return True
