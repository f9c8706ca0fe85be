"""Client-side balance state backed by the store's balance procedures."""

import logging
from typing import Any, Callable, Optional

from dogeminer.datasources import Store
from dogeminer.errors import DogeMinerError
from dogeminer.models import AuthUser, Balance, BalanceMutation

logger = logging.getLogger(__name__)

INSUFFICIENT_BALANCE = "insufficient_balance"


class BalanceState(Balance):
    """Snapshot of what the client shows."""
    is_loading: bool = True


Listener = Callable[[BalanceState], None]


class BalanceContext:
    """
    Balance view state for one signed-in user.

    Holds a :class:`BalanceState`, keeps it in sync with the store and pushes
    every change to subscribed listeners. Realtime profile updates are fed
    in through :meth:`apply_change` and win over whatever is held locally.

    Each mutation calls exactly one store procedure as the user and returns
    a boolean. :attr:`last_error` holds the reason for the most recent
    failure; ``subtract_balance`` sets it to ``INSUFFICIENT_BALANCE`` when
    the store refuses for lack of funds.
    """

    def __init__(self, store: Store, user: Optional[AuthUser] = None, token: Optional[str] = None):
        self.store = store
        self.user = user
        self.token = token
        self.state = BalanceState()
        self.last_error: Optional[str] = None
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register ``listener`` for state changes.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, **changes: Any) -> None:
        self.state = self.state.model_copy(update=changes)
        for listener in list(self._listeners):
            listener(self.state)

    async def set_user(self, user: Optional[AuthUser], token: Optional[str] = None) -> None:
        """Switch to another user (or sign out) and reload."""
        self.user = user
        self.token = token
        await self.refresh()

    async def refresh(self) -> None:
        """Reload the balance through ``get_balance``."""
        if self.user is None:
            self._set_state(balance=0.0, referral_code="", total_earned=0.0, is_loading=False)
            return

        try:
            result = await self.store.rpc("get_balance", {}, token=self.token)
        except DogeMinerError as e:
            logger.error(f"Error fetching balance: {e}")
            self._set_state(is_loading=False)
            return

        if isinstance(result, dict) and result.get("success"):
            self._set_state(
                balance=result.get("balance") or 0.0,
                referral_code=result.get("referral_code") or "",
                total_earned=result.get("total_earned") or 0.0,
                is_loading=False,
            )
        else:
            self._set_state(is_loading=False)

    def apply_change(self, row: dict[str, Any]) -> None:
        """Apply a realtime UPDATE of the user's profile row."""
        if self.user is None or row.get("id", self.user.id) != self.user.id:
            return
        self._set_state(
            balance=row.get("balance") or 0.0,
            referral_code=row.get("referral_code") or "",
            total_earned=row.get("total_earned") or 0.0,
        )

    async def _mutate(self, fn: str, params: dict[str, Any]) -> Optional[BalanceMutation]:
        self.last_error = None
        if self.user is None:
            self.last_error = "You must be signed in"
            return None

        try:
            raw = await self.store.rpc(fn, params, token=self.token)
        except DogeMinerError as e:
            logger.error(f"Error calling {fn}: {e}")
            self.last_error = e.message
            return None

        if not isinstance(raw, dict) or "success" not in raw:
            self.last_error = f"Unexpected {fn} response"
            return None

        result = BalanceMutation.model_validate(raw)
        if result.success:
            self._set_state(balance=result.new_balance or 0.0)
        else:
            self.last_error = result.error
        return result

    async def add_balance(self, amount: float) -> bool:
        result = await self._mutate("add_balance", {"p_amount": amount})
        return bool(result and result.success)

    async def subtract_balance(self, amount: float) -> bool:
        result = await self._mutate("subtract_balance", {"p_amount": amount})
        if result is not None and not result.success and result.error:
            if "insufficient" in result.error.lower():
                self.last_error = INSUFFICIENT_BALANCE
        return bool(result and result.success)

    async def claim_mining_reward(self, amount: float, character_id: str) -> bool:
        result = await self._mutate(
            "claim_mining_reward", {"p_amount": amount, "p_character_id": character_id}
        )
        return bool(result and result.success)

    async def apply_referral_code(self, code: str) -> bool:
        result = await self._mutate("apply_referral_code", {"p_code": code})
        if result is not None and result.success:
            logger.info(f"Referral code applied, bonus {result.bonus}")
        return bool(result and result.success)
