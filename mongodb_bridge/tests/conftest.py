import pytest


@pytest.fixture(scope="module")
def anyio_backend():
    # motor is asyncio-only; don't parametrize async tests over other backends.
    return "asyncio"
