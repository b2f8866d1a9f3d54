"""
Unit test conftest.py - Service fixtures.

Every service is built from the shared ServiceContext, so each operation
runs in its own unit of work against the in-memory database exactly as it
does in the function app.
"""

from unittest.mock import Mock

import pytest

from rental_core.ai.ai_service import AIResponse
from rental_core.integrations.line.client import LineClient
from rental_core.services.analytics_service import AnalyticsService
from rental_core.services.building_service import BuildingService
from rental_core.services.contract_service import ContractService
from rental_core.services.inflation_service import InflationService
from rental_core.services.payment_service import PaymentService
from rental_core.services.room_service import RoomService
from rental_core.services.signature_service import SignatureService
from rental_core.services.tenant_service import TenantService

# ==================== SERVICE FIXTURES ====================


@pytest.fixture(scope="function")
def building_service(context):
    return BuildingService(context)


@pytest.fixture(scope="function")
def room_service(context):
    return RoomService(context)


@pytest.fixture(scope="function")
def tenant_service(context):
    return TenantService(context)


@pytest.fixture(scope="function")
def contract_service(context):
    return ContractService(context)


@pytest.fixture(scope="function")
def signature_service(context):
    return SignatureService(context)


@pytest.fixture(scope="function")
def payment_service(context):
    return PaymentService(context)


@pytest.fixture(scope="function")
def inflation_service(context):
    return InflationService(context)


@pytest.fixture(scope="function")
def analytics_service(context):
    return AnalyticsService(context)


# ==================== EXTERNAL SERVICE MOCKS ====================


@pytest.fixture
def line_client():
    """LINE client mock whose sends always succeed."""
    client = Mock(spec=LineClient)
    client.push_message.return_value = True
    client.reply_message.return_value = True
    return client


@pytest.fixture
def offline_ai_client():
    """OpenAI client that always asks the caller to fall back."""
    client = Mock()
    client.complete.return_value = AIResponse(
        success=False, content="", fallback=True, error="OpenAI API key not configured"
    )
    return client
