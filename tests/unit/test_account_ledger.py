"""Unit tests for AccountLedger — CAS retry, overdraft guard, amount validation."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.cm_account.domain.ledger import AccountLedger
from src.cm_account.domain.models import Account, LedgerEntry
from src.cm_common.enums import LedgerEntryType
from src.cm_common.errors import (
    AccountNotFoundError,
    ContentionError,
    InsufficientBalanceError,
    InvalidAmountError,
)
from tests.fakes import FakeSession, InMemoryAccountRepository

_DEPOSIT = LedgerEntryType.DEPOSIT.value
_WITHDRAW = LedgerEntryType.WITHDRAW.value


def _account(balance: int, user_id: str = "u1") -> Account:
    return Account(id="acc-1", user_id=user_id, balance=balance, version=1)


class TestCredit:
    async def test_credit_adds_and_writes_ledger_entry(self) -> None:
        repo = InMemoryAccountRepository({"u1": 1000})
        ledger = AccountLedger(repo)
        db = FakeSession()

        account, entry = await ledger.credit(db, "u1", 250, _DEPOSIT, "PAYMENT", "PAY1")

        assert account.balance == 1250
        assert account.version == 1
        assert entry.amount == 250
        assert entry.balance_after == 1250
        assert entry.reference_id == "PAY1"
        assert repo.balance("u1") == 1250

    async def test_ledger_never_commits(self) -> None:
        repo = InMemoryAccountRepository({"u1": 0})
        db = FakeSession()
        await AccountLedger(repo).credit(db, "u1", 10, _DEPOSIT)
        assert db.commits == 0

    @pytest.mark.parametrize("amount", [0, -5, True, 1.5])
    async def test_non_positive_or_non_int_rejected(self, amount: object) -> None:
        repo = InMemoryAccountRepository({"u1": 100})
        with pytest.raises(InvalidAmountError):
            await AccountLedger(repo).credit(FakeSession(), "u1", amount, _DEPOSIT)  # type: ignore[arg-type]
        assert repo.balance("u1") == 100
        assert repo.entries == []

    async def test_unknown_account(self) -> None:
        repo = InMemoryAccountRepository()
        with pytest.raises(AccountNotFoundError):
            await AccountLedger(repo).credit(FakeSession(), "ghost", 10, _DEPOSIT)


class TestDebit:
    async def test_debit_subtracts(self) -> None:
        repo = InMemoryAccountRepository({"u1": 1000})
        account, entry = await AccountLedger(repo).debit(FakeSession(), "u1", 500, _WITHDRAW)
        assert account.balance == 500
        assert entry.amount == -500
        assert entry.balance_after == 500

    async def test_debit_to_exactly_zero_allowed(self) -> None:
        repo = InMemoryAccountRepository({"u1": 500})
        account, _ = await AccountLedger(repo).debit(FakeSession(), "u1", 500, _WITHDRAW)
        assert account.balance == 0

    async def test_overdraft_rejected_and_balance_unchanged(self) -> None:
        # balance 100, debit 150 -> InsufficientBalance, balance stays 100
        repo = InMemoryAccountRepository({"u1": 100})
        with pytest.raises(InsufficientBalanceError) as exc_info:
            await AccountLedger(repo).debit(FakeSession(), "u1", 150, _WITHDRAW)
        assert exc_info.value.required == 150
        assert exc_info.value.available == 100
        assert repo.balance("u1") == 100
        assert repo.entries == []

    async def test_zero_debit_rejected(self) -> None:
        repo = InMemoryAccountRepository({"u1": 100})
        with pytest.raises(InvalidAmountError):
            await AccountLedger(repo).debit(FakeSession(), "u1", 0, _WITHDRAW)


class TestCompareAndSwap:
    async def test_conflict_rereads_and_retries(self) -> None:
        repo = AsyncMock()
        repo.get_account_by_user_id.side_effect = [_account(1000), _account(900)]
        repo.update_account_balance.side_effect = [None, _account(400)]
        repo.insert_ledger_entry.return_value = LedgerEntry(
            id=7, user_id="u1", entry_type=_WITHDRAW, amount=-500, balance_after=400
        )
        ledger = AccountLedger(repo, max_retries=3)

        account, entry = await ledger.debit(MagicMock(), "u1", 500, _WITHDRAW)

        assert account.balance == 400
        assert entry.id == 7
        calls = repo.update_account_balance.await_args_list
        assert calls[0].args[1:] == ("u1", 500, 1000)
        assert calls[1].args[1:] == ("u1", 400, 900)
        repo.insert_ledger_entry.assert_awaited_once()

    async def test_retries_exhausted_raises_contention(self) -> None:
        repo = AsyncMock()
        repo.get_account_by_user_id.return_value = _account(1000)
        repo.update_account_balance.return_value = None
        ledger = AccountLedger(repo, max_retries=2)

        with pytest.raises(ContentionError):
            await ledger.debit(MagicMock(), "u1", 10, _WITHDRAW)

        assert repo.update_account_balance.await_count == 3
        repo.insert_ledger_entry.assert_not_awaited()

    async def test_credit_is_one_relative_write(self) -> None:
        repo = AsyncMock()
        repo.increment_account_balance.return_value = _account(1010)
        repo.insert_ledger_entry.return_value = LedgerEntry(
            id=8, user_id="u1", entry_type=_DEPOSIT, amount=10, balance_after=1010
        )

        account, _ = await AccountLedger(repo, max_retries=0).credit(
            MagicMock(), "u1", 10, _DEPOSIT
        )

        assert account.balance == 1010
        repo.increment_account_balance.assert_awaited_once()
        assert repo.increment_account_balance.await_args.args[1:] == ("u1", 10)
        repo.get_account_by_user_id.assert_not_awaited()
        repo.update_account_balance.assert_not_awaited()
        assert repo.insert_ledger_entry.await_args.args[4] == 1010

    async def test_hot_account_credits_never_contend(self) -> None:
        """Twenty racing credits on one account with no retry budget all land."""
        repo = InMemoryAccountRepository({"hot": 0}, interleave=True)
        ledger = AccountLedger(repo, max_retries=0)

        await asyncio.gather(
            *(ledger.credit(FakeSession(), "hot", 5, _DEPOSIT) for _ in range(20))
        )

        assert repo.balance("hot") == 100
        assert repo.cas_conflicts == 0
        assert sorted(e.balance_after for e in repo.entries) == list(range(5, 101, 5))

    async def test_concurrent_debits_apply_only_what_fits(self) -> None:
        """Five racing 30-xu debits on 100 xu: exactly three land, no double-apply."""
        repo = InMemoryAccountRepository({"u1": 100}, interleave=True)
        ledger = AccountLedger(repo, max_retries=10)

        results = await asyncio.gather(
            *(ledger.debit(FakeSession(), "u1", 30, _WITHDRAW) for _ in range(5)),
            return_exceptions=True,
        )

        applied = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, InsufficientBalanceError)]
        assert len(applied) == 3
        assert len(rejected) == 2
        assert repo.balance("u1") == 10
        assert repo.cas_conflicts > 0
        # Ledger entries form one total order of balances
        assert sorted(e.balance_after for e in repo.entries) == [10, 40, 70]

    async def test_balance_never_negative_under_mixed_load(self) -> None:
        repo = InMemoryAccountRepository({"u1": 50}, interleave=True)
        ledger = AccountLedger(repo, max_retries=20)
        ops = [ledger.debit(FakeSession(), "u1", 40, _WITHDRAW) for _ in range(4)]
        ops += [ledger.credit(FakeSession(), "u1", 20, _DEPOSIT) for _ in range(2)]

        await asyncio.gather(*ops, return_exceptions=True)

        assert repo.balance("u1") >= 0
        assert all(e.balance_after >= 0 for e in repo.entries)
        assert repo.balance("u1") == 50 + sum(e.amount for e in repo.entries)
