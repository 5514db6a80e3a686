"""Tracked officials of the Pernambuco delegation.

Federal legislators carry the identifier used by their chamber's API.
State and municipal executives have no integrated source, so their
identity doubles as a static profile.

Cache keys:
    deputado_{camara id}, senador_{senado code}, local_{ascii snake name}
"""

import re
import unicodedata

from vigia.models import Chamber, Identity, JurisdictionTier


STATE_TRANSPARENCY_URL = "https://www.transparencia.pe.gov.br/"

STATIC_PROFILE_FINDINGS = (
    "Dados de transparência estaduais/municipais não integrados",
    "Consulte o Portal da Transparência de PE para mais informações",
)

_DEPUTIES = {
    "Túlio Gadêlha": 204534,
    "Felipe Carreras": 204455,
    "Sebastião Oliveira": 160602,
    "Clarissa Tércio": 220564,
    "André de Paula": 74120,
    "Fernando Rodolfo": 204540,
    "Eduardo da Fonte": 160523,
    "Guilherme Uchoa": 230155,
    "Mendonça Filho": 73621,
    "Pedro Campos": 204565,
}

_SENATORS = {
    "Fernando Dueire": 6388,
    "Humberto Costa": 4539,
    "Teresa Leitão": 6231,
}


def local_key(name: str) -> str:
    """"João Campos" -> "local_joao_campos"."""
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode()
    return "local_" + re.sub(r"\W+", "_", ascii_name.strip().lower())


def deputy(name: str, camara_id: int, region: str = "PE") -> Identity:
    return Identity(
        id=f"deputado_{camara_id}",
        name=name,
        tier=JurisdictionTier.FEDERAL,
        chamber=Chamber.LOWER,
        source_id=camara_id,
        region=region,
        position="Deputado Federal",
    )


def senator(name: str, code: int, region: str = "PE") -> Identity:
    return Identity(
        id=f"senador_{code}",
        name=name,
        tier=JurisdictionTier.FEDERAL,
        chamber=Chamber.UPPER,
        source_id=code,
        region=region,
        position="Senador",
    )


LOCAL_OFFICIALS = (
    Identity(
        id=local_key("João Campos"),
        name="João Campos",
        tier=JurisdictionTier.MUNICIPAL,
        region="PE",
        position="Prefeito de Recife",
        party="PSB",
        photo_url=(
            "https://upload.wikimedia.org/wikipedia/commons/thumb/8/85/"
            "Jo%C3%A3o_Campos_em_Dezembro_de_2020.jpg/200px-Jo%C3%A3o_Campos_em_Dezembro_de_2020.jpg"
        ),
        profile_url=STATE_TRANSPARENCY_URL,
    ),
    Identity(
        id=local_key("Raquel Lyra"),
        name="Raquel Lyra",
        tier=JurisdictionTier.STATE,
        region="PE",
        position="Governadora de Pernambuco",
        party="PSDB",
        photo_url=(
            "https://upload.wikimedia.org/wikipedia/commons/thumb/c/ca/"
            "Raquel_Lyra_-_foto_oficial_%28cropped%29.jpg/200px-Raquel_Lyra_-_foto_oficial_%28cropped%29.jpg"
        ),
        profile_url=STATE_TRANSPARENCY_URL,
    ),
)

TRACKED: tuple[Identity, ...] = (
    *(deputy(name, camara_id) for name, camara_id in _DEPUTIES.items()),
    *(senator(name, code) for name, code in _SENATORS.items()),
    *LOCAL_OFFICIALS,
)


def find(entity_id: str, identities: tuple[Identity, ...] = TRACKED) -> Identity | None:
    """Look up a tracked identity by cache key."""
    for identity in identities:
        if identity.id == entity_id:
            return identity
    return None
