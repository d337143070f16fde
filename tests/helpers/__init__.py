"""Test helpers: an in-memory checkout gateway and sample data."""

from tests.helpers.fake_gateway import (
    DEFAULT_OPTIONS,
    FakeGateway,
    GatewayCall,
    make_address,
)

__all__ = [
    "DEFAULT_OPTIONS",
    "FakeGateway",
    "GatewayCall",
    "make_address",
]
