import asyncio

import pytest

from remote_e2e.errors import TunnelError, TunnelErrorCategory, ValidationError
from remote_e2e.tunnel import TunnelCoordinator, categorize_tunnel_error

from tests.fixtures.fakes import FakeTunnelProvider


@pytest.mark.asyncio
async def test_open_exposes_port_under_subdomain(tunnel_provider):
    coordinator = TunnelCoordinator(tunnel_provider, base_domain="tunnels.example.com")

    info = await coordinator.open(3000, "run-abc", "tok")

    assert info.url == "https://run-abc.tunnels.example.com"
    assert info.port == 3000
    assert info.subdomain == "run-abc"
    assert tunnel_provider.opened == [(3000, "run-abc.tunnels.example.com", "tok")]
    assert coordinator.is_open()


@pytest.mark.asyncio
@pytest.mark.parametrize("port", [0, -1, 65536, True, "3000"])
async def test_invalid_port_fails_before_transport(tunnel_provider, port):
    coordinator = TunnelCoordinator(tunnel_provider)

    with pytest.raises(ValidationError) as exc:
        await coordinator.open(port, "sub", "tok")

    assert "Port must be between 1 and 65535" in exc.value.message
    assert tunnel_provider.events == []
    assert not coordinator.is_open()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "subdomain, token",
    [("sub", ""), ("sub", None), ("", "tok"), ("   ", "tok")],
)
async def test_missing_token_or_subdomain_fails_before_transport(
    tunnel_provider, subdomain, token
):
    coordinator = TunnelCoordinator(tunnel_provider)

    with pytest.raises(ValidationError):
        await coordinator.open(3000, subdomain, token)

    assert tunnel_provider.events == []


@pytest.mark.asyncio
async def test_second_open_closes_first(tunnel_provider):
    coordinator = TunnelCoordinator(tunnel_provider, base_domain="t.example.com")

    await coordinator.open(3000, "first", "tok")
    await coordinator.open(3001, "second", "tok")

    assert tunnel_provider.events == [
        "open:first.t.example.com",
        "close:https://first.t.example.com",
        "open:second.t.example.com",
    ]
    assert tunnel_provider.active == 1
    assert coordinator.info.subdomain == "second"


@pytest.mark.asyncio
async def test_close_is_idempotent(tunnel_provider):
    coordinator = TunnelCoordinator(tunnel_provider)
    await coordinator.open(3000, "sub", "tok")

    await coordinator.close()
    await coordinator.close()

    assert len(tunnel_provider.closed) == 1
    assert not coordinator.is_open()


@pytest.mark.asyncio
async def test_close_swallows_provider_errors():
    provider = FakeTunnelProvider(close_error=RuntimeError("agent gone"))
    coordinator = TunnelCoordinator(provider)
    await coordinator.open(3000, "sub", "tok")

    await coordinator.close()

    assert not coordinator.is_open()


@pytest.mark.asyncio
async def test_provider_failure_is_categorized():
    provider = FakeTunnelProvider(fail_with=RuntimeError("ERR_NGROK_105 authtoken invalid"))
    coordinator = TunnelCoordinator(provider)

    with pytest.raises(TunnelError) as exc:
        await coordinator.open(3000, "sub", "tok")

    assert exc.value.category is TunnelErrorCategory.AUTHENTICATION
    assert isinstance(exc.value.__cause__, RuntimeError)
    assert not coordinator.is_open()


@pytest.mark.parametrize(
    "error, category",
    [
        (RuntimeError("Invalid tunnel configuration"), TunnelErrorCategory.AUTHENTICATION),
        (RuntimeError("connect ECONNREFUSED 127.0.0.1:3000"), TunnelErrorCategory.PORT_UNREACHABLE),
        (RuntimeError("The domain is already bound"), TunnelErrorCategory.NAME_IN_USE),
        (FileNotFoundError("ngrok"), TunnelErrorCategory.BINARY_MISSING),
        (RuntimeError("spawn ngrok ENOENT"), TunnelErrorCategory.BINARY_MISSING),
        (RuntimeError("HTTP 401 Unauthorized"), TunnelErrorCategory.AUTHENTICATION),
        (RuntimeError("something odd"), TunnelErrorCategory.GENERIC),
    ],
)
def test_categorize_tunnel_error(error, category):
    result = categorize_tunnel_error(error, 3000, "sub")

    assert result.category is category
    assert result.to_dict()["category"] == category.value


def test_categorized_messages_name_port_and_subdomain():
    port_error = categorize_tunnel_error(RuntimeError("connection refused"), 8080, "sub")
    name_error = categorize_tunnel_error(RuntimeError("subdomain taken"), 8080, "my-sub")
    generic = categorize_tunnel_error(RuntimeError("boom"), 8080, "sub")

    assert "localhost:8080" in port_error.message
    assert "'my-sub'" in name_error.message
    assert generic.message == "Failed to create tunnel: boom"
    assert generic.original == "boom"


@pytest.mark.asyncio
async def test_cancelled_open_closes_tunnel_once_it_lands():
    provider = FakeTunnelProvider(open_delay=0.2)
    coordinator = TunnelCoordinator(provider, base_domain="t.example.com")

    opening = asyncio.ensure_future(coordinator.open(3000, "slow", "tok"))
    await asyncio.sleep(0.05)
    opening.cancel()

    with pytest.raises(asyncio.CancelledError):
        await opening

    assert provider.events == [
        "open:slow.t.example.com",
        "close:https://slow.t.example.com",
    ]
    assert provider.active == 0
    assert not coordinator.is_open()


@pytest.mark.asyncio
async def test_cancelled_open_that_fails_leaves_nothing_to_close():
    provider = FakeTunnelProvider(fail_with=RuntimeError("boom"), open_delay=0.1)
    coordinator = TunnelCoordinator(provider)

    opening = asyncio.ensure_future(coordinator.open(3000, "slow", "tok"))
    await asyncio.sleep(0.02)
    opening.cancel()

    with pytest.raises(asyncio.CancelledError):
        await opening

    assert provider.closed == []
    assert not coordinator.is_open()
