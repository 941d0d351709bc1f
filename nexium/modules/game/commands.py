"""
Command dispatch for chat and HTTP front ends.

`GameCommand` names every command a front end can issue. `CommandRouter`
builds its handler table once, at construction, and every dispatch returns
a `CommandResult`: ``ok`` plus JSON-friendly ``data``, or the failure's
structured classification from `NexiumDomainException.to_dict()` so each
channel renders it its own way.

Invariant violations are programmer errors. They are logged at CRITICAL and
reported to the caller as a generic internal error, never verbatim.
Exceptions outside the domain hierarchy propagate.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from nexium.core.logging.logger import get_logger
from nexium.domain.exceptions import (
    InvariantViolation,
    NexiumDomainException,
    ValidationError,
    get_error_severity,
    should_alert,
)
from nexium.modules.game.service import GameService

logger = get_logger(__name__)

Handler = Callable[[Mapping[str, Any]], Awaitable[Any]]


class GameCommand(str, Enum):
    REGISTER = "register"
    EXPLORE = "explore"
    SCAN = "scan"
    JUMP = "jump"
    BATTLE = "battle"
    MARKET_LIST = "market_list"
    MARKET_BUY = "market_buy"
    MARKET_BROWSE = "market_browse"
    MARKET_TRENDS = "market_trends"
    MARKET_POPULAR = "market_popular"
    MY_LISTINGS = "my_listings"
    EXPIRE_LISTINGS = "expire_listings"
    PROFILE = "profile"
    LEADERBOARD = "leaderboard"


@dataclass(frozen=True)
class CommandResult:
    command: str
    ok: bool
    data: Any = None
    error: Optional[Dict[str, Any]] = field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {"command": self.command, "ok": True, "data": self.data}
        return {"command": self.command, "ok": False, "error": self.error}


INTERNAL_ERROR: Dict[str, Any] = {
    "error_type": "InternalError",
    "error_code": "INTERNAL_ERROR",
    "category": "invariant",
    "message": "Something went wrong on our side",
    "details": {},
    "severity": "critical",
    "is_retryable": False,
}


class CommandRouter:
    """
    Explicit handler table over a GameService.

    Example
    -------
    >>> result = await router.dispatch("jump", player_id=7, coordinates="X10:Y-4:Z2")
    >>> result.ok
    True
    """

    def __init__(self, service: GameService) -> None:
        self._service = service
        self._handlers: Dict[GameCommand, Handler] = {
            GameCommand.REGISTER: self._register,
            GameCommand.EXPLORE: self._explore,
            GameCommand.SCAN: self._scan,
            GameCommand.JUMP: self._jump,
            GameCommand.BATTLE: self._battle,
            GameCommand.MARKET_LIST: self._market_list,
            GameCommand.MARKET_BUY: self._market_buy,
            GameCommand.MARKET_BROWSE: self._market_browse,
            GameCommand.MARKET_TRENDS: self._market_trends,
            GameCommand.MARKET_POPULAR: self._market_popular,
            GameCommand.MY_LISTINGS: self._my_listings,
            GameCommand.EXPIRE_LISTINGS: self._expire_listings,
            GameCommand.PROFILE: self._profile,
            GameCommand.LEADERBOARD: self._leaderboard,
        }
        missing = set(GameCommand) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for commands: {sorted(c.value for c in missing)}")

    @property
    def commands(self) -> List[str]:
        return [command.value for command in self._handlers]

    async def dispatch(self, command: Union[GameCommand, str], **arguments: Any) -> CommandResult:
        name = command.value if isinstance(command, GameCommand) else str(command)
        try:
            resolved = GameCommand(name)
        except ValueError:
            return CommandResult(
                name,
                ok=False,
                error=ValidationError("command", f"unknown command {name!r}").to_dict(),
            )

        try:
            data = await self._handlers[resolved](arguments)
        except InvariantViolation as exc:
            logger.critical(
                "Invariant violated while handling command",
                extra={"command": name, "error": str(exc), "details": exc.details},
                exc_info=True,
            )
            return CommandResult(name, ok=False, error=dict(INTERNAL_ERROR))
        except NexiumDomainException as exc:
            log = logger.error if should_alert(exc) else logger.info
            log(
                "Command failed",
                extra={
                    "command": name,
                    "error_code": exc.error_code,
                    "severity": get_error_severity(exc).value,
                },
            )
            return CommandResult(name, ok=False, error=exc.to_dict())

        return CommandResult(name, ok=True, data=to_jsonable(data))

    # ------------------------------------------------------------------ #
    # Handlers
    # ------------------------------------------------------------------ #

    async def _register(self, args: Mapping[str, Any]) -> Any:
        return await self._service.register_player(
            str(_required(args, "external_id")),
            str(_required(args, "username")),
            args.get("ship_name"),
        )

    async def _explore(self, args: Mapping[str, Any]) -> Any:
        return await self._service.explore(_int(args, "player_id"))

    async def _scan(self, args: Mapping[str, Any]) -> Any:
        return await self._service.scan(_int(args, "player_id"))

    async def _jump(self, args: Mapping[str, Any]) -> Any:
        return await self._service.jump(_int(args, "player_id"), str(_required(args, "coordinates")))

    async def _battle(self, args: Mapping[str, Any]) -> Any:
        return await self._service.battle(_int(args, "player_id"), _int(args, "target_id"))

    async def _market_list(self, args: Mapping[str, Any]) -> Any:
        return await self._service.list_item(
            _int(args, "player_id"),
            _int(args, "item_id"),
            _int(args, "quantity"),
            _required(args, "price_per_unit"),
        )

    async def _market_buy(self, args: Mapping[str, Any]) -> Any:
        return await self._service.purchase(_int(args, "player_id"), str(_required(args, "listing_id")))

    async def _market_browse(self, args: Mapping[str, Any]) -> Any:
        item_id = args.get("item_id")
        return await self._service.browse_market(
            _int(args, "limit", 20),
            _int(args, "offset", 0),
            _int(args, "item_id") if item_id is not None else None,
        )

    async def _market_trends(self, args: Mapping[str, Any]) -> Any:
        return await self._service.market_trends()

    async def _market_popular(self, args: Mapping[str, Any]) -> Any:
        limit = args.get("limit")
        return await self._service.popular_items(_int(args, "limit") if limit is not None else None)

    async def _my_listings(self, args: Mapping[str, Any]) -> Any:
        return await self._service.my_listings(_int(args, "player_id"), bool(args.get("active_only", True)))

    async def _expire_listings(self, args: Mapping[str, Any]) -> Any:
        return await self._service.expire_listings()

    async def _profile(self, args: Mapping[str, Any]) -> Any:
        return await self._service.profile(_int(args, "player_id"))

    async def _leaderboard(self, args: Mapping[str, Any]) -> Any:
        return await self._service.leaderboard(_int(args, "limit", 10))


# ---------------------------------------------------------------------- #
# Argument and result helpers
# ---------------------------------------------------------------------- #

_MISSING = object()


def _required(args: Mapping[str, Any], key: str) -> Any:
    value = args.get(key, _MISSING)
    if value is _MISSING or value is None:
        raise ValidationError(key, f"{key} is required")
    return value


def _int(args: Mapping[str, Any], key: str, default: Any = _MISSING) -> int:
    value = args.get(key, default)
    if value is _MISSING or value is None:
        raise ValidationError(key, f"{key} is required")
    if isinstance(value, bool):
        raise ValidationError(key, f"{key} must be a whole number")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(key, f"{key} must be a whole number, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(key, f"{key} must be a whole number, got {value!r}") from exc


def to_jsonable(value: Any) -> Any:
    """Convert service results into plain JSON types."""
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if hasattr(value, "snapshot"):
        return to_jsonable(value.snapshot())
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(item) for item in value]
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    return str(value)
