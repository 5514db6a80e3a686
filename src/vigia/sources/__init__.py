"""Source adapters for Vigia.

One adapter per (source, owned Entity field):
- Câmara dos Deputados: profile, CEAP expenses
- Senado Federal: profile, expenses
- Portal da Transparência: amendments (needs an API key)
- Declared staff roster CSV: staffing
"""

from vigia.sources.base import (
    ALL_FIELDS,
    FIELD_AMENDMENTS,
    FIELD_PROFILE,
    FIELD_SPEND,
    FIELD_STAFF,
    Err,
    FetchParams,
    Ok,
    ParseError,
    SourceAdapter,
)
from vigia.sources.camara import CamaraExpensesAdapter, CamaraProfileAdapter
from vigia.sources.senado import SenadoExpensesAdapter, SenadoProfileAdapter
from vigia.sources.staff import StaffRosterAdapter
from vigia.sources.transparencia import TransparenciaAmendmentsAdapter


def default_adapters() -> list[SourceAdapter]:
    """Every adapter shipped, configured from settings."""
    return [
        CamaraProfileAdapter(),
        CamaraExpensesAdapter(),
        SenadoProfileAdapter(),
        SenadoExpensesAdapter(),
        StaffRosterAdapter(),
        TransparenciaAmendmentsAdapter(),
    ]


__all__ = [
    "ALL_FIELDS",
    "FIELD_AMENDMENTS",
    "FIELD_PROFILE",
    "FIELD_SPEND",
    "FIELD_STAFF",
    "Err",
    "FetchParams",
    "Ok",
    "ParseError",
    "SourceAdapter",
    "CamaraExpensesAdapter",
    "CamaraProfileAdapter",
    "SenadoExpensesAdapter",
    "SenadoProfileAdapter",
    "StaffRosterAdapter",
    "TransparenciaAmendmentsAdapter",
    "default_adapters",
]
