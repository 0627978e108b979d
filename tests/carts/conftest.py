import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def carts_bed():
    from carts.domain import carts

    bed = DomainFixture(carts)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(carts_bed):
    from carts.catalog import reset_catalog

    with carts_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()

    reset_catalog()
