"""
Domain API Connectors

HTTP clients for the industrial systems (MES, SCADA, ERP, OA) the API channel
can reach, addressed by connector name and endpoint name.
"""

from .base import (
    APICallResult,
    APIConnector,
    APIConnectorConfig,
    APIEndpoint,
    ConnectorCredentials,
    ConnectorRegistry,
)

__all__ = [
    "APICallResult",
    "APIConnector",
    "APIConnectorConfig",
    "APIEndpoint",
    "ConnectorCredentials",
    "ConnectorRegistry",
]
