import pytest
from unittest.mock import Mock
from rest_framework.test import APIClient

from accounts.tests.factory import AdminUserFactory, UserFactory
from catalog.tests.factory import ProductFactory
from orders.config import LifecycleConfig
from orders.invoices import InvoiceGenerator
from orders.payment_services import PaystackGateway
from orders.services import OrderLifecycleService


def fake_initialize(**kwargs):
    reference = kwargs["reference"]
    return {
        "authorization_url": f"https://checkout.paystack.com/{reference.lower()}",
        "access_code": f"AC_{reference[-8:]}",
        "reference": reference,
    }


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def customer(db):
    return UserFactory(email="buyer@example.com", name="Ama Buyer")


@pytest.fixture
def other_customer(db):
    return UserFactory(email="someone-else@example.com")


@pytest.fixture
def staff_user(db):
    return AdminUserFactory()


@pytest.fixture
def product(db):
    return ProductFactory(name="Plantain Chips", price="12.50", quantity=5)


@pytest.fixture
def lifecycle_config(settings):
    return LifecycleConfig.from_settings()


@pytest.fixture
def gateway(lifecycle_config):
    """Real signature checks, mocked network calls."""
    gateway = PaystackGateway.from_config(lifecycle_config)
    gateway.initialize_transaction = Mock(side_effect=fake_initialize)
    gateway.verify_transaction = Mock(return_value={"status": "ongoing"})
    return gateway


@pytest.fixture
def service(lifecycle_config, gateway):
    return OrderLifecycleService(
        config=lifecycle_config,
        gateway=gateway,
        invoices=InvoiceGenerator(lifecycle_config),
    )


@pytest.fixture
def delivery_address():
    return {"street": "12 Oxford Street", "city": "Accra", "region": "Greater Accra", "phone": "+233241234567"}
