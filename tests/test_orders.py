from decimal import Decimal

import pytest

from clob_bridge.core.orders import OrderFailed, OrderRequest, OrderSubmitter
from clob_bridge.core.session import SessionBuilder
from clob_bridge.domain.command import parse_command
from clob_bridge.utils.enums import OrderKind, OrderSide, SignatureMode

from tests.conftest import FUNDER


SAFE = SignatureMode.GNOSIS_SAFE


def make_submitter(logger, gateway, identity):
    return OrderSubmitter(logger, SessionBuilder(logger, gateway, identity))


def test_request_kind_follows_price():
    limit = OrderRequest.from_command(parse_command('{"cmd":"order","token_id":"1","price":0.5}'))
    market = OrderRequest.from_command(parse_command('{"cmd":"order","token_id":"1"}'))
    assert limit.kind is OrderKind.LIMIT
    assert market.kind is OrderKind.MARKET
    assert market.amount == Decimal("10.0")


@pytest.mark.asyncio
async def test_limit_order_pipeline(logger, gateway, identity):
    submitter = make_submitter(logger, gateway, identity)
    command = parse_command('{"cmd":"order","token_id":"123","side":"sell","amount":5,"price":0.42}')

    data = await submitter.submit(command, SAFE)

    assert data == {"order_type": "limit", "response": {"orderID": "0xabc", "status": "live"}}
    assert gateway.calls == [
        ("build_limit", 123, Decimal("5"), Decimal("0.42"), OrderSide.SELL),
        ("sign", OrderKind.LIMIT),
        ("submit", OrderKind.LIMIT),
    ]


@pytest.mark.asyncio
async def test_market_order_is_fill_or_kill(logger, gateway, identity):
    submitter = make_submitter(logger, gateway, identity)
    command = parse_command('{"cmd":"order","token_id":"0x10","amount":"2.5"}')

    data = await submitter.submit(command, SAFE)

    assert data["order_type"] == "market"
    assert gateway.calls[0] == ("build_market", 16, Decimal("2.5"), OrderSide.BUY, True)


@pytest.mark.asyncio
async def test_session_uses_given_mode_and_funder(logger, gateway, identity):
    gateway.accepted_modes = {SignatureMode.PROXY}
    submitter = make_submitter(logger, gateway, identity)

    await submitter.submit(parse_command('{"cmd":"order","token_id":"1","price":"0.1"}'), SignatureMode.PROXY, FUNDER)

    assert gateway.auth_calls == [(SignatureMode.PROXY, FUNDER)]


@pytest.mark.asyncio
@pytest.mark.parametrize("line, message", [
    ('{"cmd":"order","token_id":"abc"}', "Invalid token_id - must be a valid U256"),
    ('{"cmd":"order","token_id":"' + "9" * 5000 + '"}', "Invalid token_id - must be a valid U256"),
    ('{"cmd":"order","token_id":"0x' + "f" * 65 + '"}', "Invalid token_id - must be a valid U256"),
    ('{"cmd":"order","token_id":"1","amount":"lots"}', "Invalid amount"),
    ('{"cmd":"order","token_id":"1","price":"cheap"}', "Invalid price"),
])
async def test_invalid_fields_fail_before_authentication(logger, gateway, identity, line, message):
    submitter = make_submitter(logger, gateway, identity)

    with pytest.raises(OrderFailed, match=message):
        await submitter.submit(parse_command(line), SAFE)
    assert gateway.auth_calls == []


@pytest.mark.asyncio
async def test_sign_failure_submits_nothing(logger, gateway, identity):
    gateway.sign_error = "bad tick size"
    submitter = make_submitter(logger, gateway, identity)

    with pytest.raises(OrderFailed, match="bad tick size"):
        await submitter.submit(parse_command('{"cmd":"order","token_id":"1","price":0.5}'), SAFE)
    assert ("submit", OrderKind.LIMIT) not in gateway.calls


@pytest.mark.asyncio
async def test_auth_failure_is_order_failure(logger, gateway, identity):
    gateway.accepted_modes = set()
    submitter = make_submitter(logger, gateway, identity)

    with pytest.raises(OrderFailed, match="Authentication rejected"):
        await submitter.submit(parse_command('{"cmd":"order","token_id":"1"}'), SAFE)
    assert gateway.calls == []
