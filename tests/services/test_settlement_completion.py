import pytest
import pytest_asyncio
from unittest.mock import AsyncMock
from pymongo.errors import PyMongoError

from app.core.config import settings
from app.core.errors import NotFoundError, SettlementStateError, StoreError
from app.models.settlement import GroupSettlement
from app.models.wallet import WalletType
from app.services.settlement_service import SettlementService


@pytest.fixture
def pending_settlement():
    return GroupSettlement(
        id="g1_bob_alice",
        group_id="g1",
        from_user_id="bob",
        to_user_id="alice",
        amount_cents=2500
    )


@pytest_asyncio.fixture
async def stored_settlement(fake_db, pending_settlement):
    await fake_db["groupSettlements"].insert_one(pending_settlement.to_document())
    return pending_settlement


@pytest.fixture
def best_effort(monkeypatch):
    monkeypatch.setattr(settings, "ATOMIC_SETTLEMENT_COMPLETION", False)


def _docs(fake_db, name):
    return list(fake_db[name].docs.values())


@pytest.mark.asyncio
async def test_complete_records_payment(fake_db, stored_settlement, log_events):
    completed = await SettlementService(fake_db).complete("g1_bob_alice", WalletType.GPAY, notes="UPI ref 991")

    assert completed.is_completed
    assert completed.payment_method == "gpay"
    assert completed.notes == "UPI ref 991"
    assert completed.completed_at is not None

    [entry] = _docs(fake_db, "transactions")
    assert entry["user_id"] == "bob"
    assert entry["amount_cents"] == 2500
    assert entry["category"] == "settlement"
    assert entry["is_settlement"] is True
    assert entry["settlement_id"] == "g1_bob_alice"
    assert entry["wallet"] == "gpay"

    [history] = _docs(fake_db, "walletHistory")
    assert (history["user_id"], history["wallet"], history["type"], history["amount_cents"]) == (
        "bob", "gpay", "deduct", 2500
    )

    assert fake_db["wallets"].docs["bob_gpay"]["balance_cents"] == -2500

    [event] = [e for e in log_events if e["event"] == "settlement_completed"]
    assert event["settlement_id"] == "g1_bob_alice"
    assert event["payment_method"] == "gpay"


@pytest.mark.asyncio
async def test_overdraft_is_allowed_and_logged(fake_db, stored_settlement, log_events):
    await SettlementService(fake_db).complete("g1_bob_alice", WalletType.CASH)

    [warning] = [e for e in log_events if e["event"] == "wallet_overdrawn"]
    assert warning["log_level"] == "warning"
    assert warning["user_id"] == "bob"
    assert warning["balance_cents"] == -2500


@pytest.mark.asyncio
async def test_existing_wallet_balance_is_debited(fake_db, stored_settlement):
    await fake_db["wallets"].insert_one({
        "_id": "bob_cash", "user_id": "bob", "type": "cash", "name": "Cash", "balance_cents": 10000
    })

    await SettlementService(fake_db).complete("g1_bob_alice", WalletType.CASH)

    assert fake_db["wallets"].docs["bob_cash"]["balance_cents"] == 7500


@pytest.mark.asyncio
async def test_complete_unknown_settlement(fake_db):
    with pytest.raises(NotFoundError):
        await SettlementService(fake_db).complete("g1_nobody_alice", WalletType.CASH)


@pytest.mark.asyncio
async def test_complete_twice_is_rejected(fake_db, stored_settlement):
    service = SettlementService(fake_db)
    await service.complete("g1_bob_alice", WalletType.CASH)

    with pytest.raises(SettlementStateError):
        await service.complete("g1_bob_alice", WalletType.CASH)

    assert len(_docs(fake_db, "transactions")) == 1
    assert fake_db["wallets"].docs["bob_cash"]["balance_cents"] == -2500


@pytest.mark.asyncio
async def test_atomic_completion_rolls_back_on_failure(fake_db, stored_settlement, monkeypatch):
    monkeypatch.setattr(
        fake_db["wallets"], "find_one_and_update", AsyncMock(side_effect=PyMongoError("write conflict"))
    )

    with pytest.raises(StoreError):
        await SettlementService(fake_db).complete("g1_bob_alice", WalletType.CASH)

    assert fake_db["groupSettlements"].docs["g1_bob_alice"]["status"] == "pending"
    assert _docs(fake_db, "transactions") == []
    assert _docs(fake_db, "walletHistory") == []


@pytest.mark.asyncio
async def test_atomic_completion_uses_one_session(fake_db, stored_settlement, monkeypatch):
    sessions = []
    collection = fake_db["transactions"]
    real_insert = collection.insert_one

    async def spy_insert(document, session=None):
        sessions.append(session)
        return await real_insert(document, session=session)

    monkeypatch.setattr(collection, "insert_one", spy_insert)

    await SettlementService(fake_db).complete("g1_bob_alice", WalletType.CASH)

    assert len(sessions) == 1
    assert sessions[0] is not None


@pytest.mark.asyncio
async def test_best_effort_keeps_completion_when_side_effect_fails(
    fake_db, stored_settlement, best_effort, log_events, monkeypatch
):
    monkeypatch.setattr(
        fake_db["transactions"], "insert_one", AsyncMock(side_effect=PyMongoError("disk full"))
    )

    completed = await SettlementService(fake_db).complete("g1_bob_alice", WalletType.CASH)

    assert completed.is_completed
    assert fake_db["groupSettlements"].docs["g1_bob_alice"]["status"] == "completed"
    # Later steps still ran
    assert len(_docs(fake_db, "walletHistory")) == 1
    assert fake_db["wallets"].docs["bob_cash"]["balance_cents"] == -2500

    [failure] = [e for e in log_events if e["event"] == "settlement_side_effect_failed"]
    assert failure["step"] == "ledger_entry"
    assert failure["settlement_id"] == "g1_bob_alice"


@pytest.mark.asyncio
async def test_best_effort_status_write_failure_raises(fake_db, stored_settlement, best_effort, monkeypatch):
    monkeypatch.setattr(
        fake_db["groupSettlements"], "find_one_and_update", AsyncMock(side_effect=PyMongoError("not primary"))
    )

    with pytest.raises(StoreError):
        await SettlementService(fake_db).complete("g1_bob_alice", WalletType.CASH)

    assert _docs(fake_db, "transactions") == []
    assert _docs(fake_db, "wallets") == []
