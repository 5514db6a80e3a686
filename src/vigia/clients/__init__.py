"""HTTP client layer for Vigia.

Async clients for the public data sources:
- Câmara dos Deputados: deputy identity, CEAP expenses
- Senado Federal: senator identity, expenses
- TSE: future election publication
- Portal da Transparência: budget amendments
"""

from vigia.clients.base import BaseAsyncClient, RateLimiter, TransportError
from vigia.clients.camara import CamaraClient
from vigia.clients.senado import SenadoClient
from vigia.clients.tse import TSEClient
from vigia.clients.transparencia import TransparenciaClient

__all__ = [
    "BaseAsyncClient",
    "RateLimiter",
    "TransportError",
    "CamaraClient",
    "SenadoClient",
    "TSEClient",
    "TransparenciaClient",
]
