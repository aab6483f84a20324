"""
Bus Access - Connecting to the message bus and owning a well-known name.

Only one daemon may own a name at a time. Acquisition happens once at
startup and failure is fatal; the error says whether another daemon is
already running or something else went wrong.
"""

import structlog
from dbus_next import BusType, Message, MessageType, NameFlag, RequestNameReply
from dbus_next.aio import MessageBus

from ..errors import BusError

__all__ = ["SESSION_BUS", "acquire_name", "connect_bus", "is_name_lost"]

logger = structlog.get_logger(__name__)

SESSION_BUS = "session bus"


async def connect_bus(bus_address: str | None = None) -> MessageBus:
    """Connect to the session bus, or to the bus at bus_address.

    Raises:
        BusError: If no bus can be reached
    """
    target = bus_address or SESSION_BUS
    try:
        if bus_address:
            bus = MessageBus(bus_address=bus_address)
        else:
            bus = MessageBus(bus_type=BusType.SESSION)
        await bus.connect()
    except Exception as e:
        raise BusError(target, f"cannot connect: {e}") from e

    logger.debug("bus_connected", bus=target, unique_name=bus.unique_name)
    return bus


async def acquire_name(bus: MessageBus, name: str, replace: bool = False) -> None:
    """Become the primary owner of name.

    Args:
        bus: Connected bus
        name: Well-known name to own
        replace: Take the name over from its current owner

    Raises:
        BusError: If the name cannot be acquired; already_running is set
            when another connection owns it
    """
    flags = NameFlag.DO_NOT_QUEUE | NameFlag.ALLOW_REPLACEMENT
    if replace:
        flags |= NameFlag.REPLACE_EXISTING

    try:
        reply = await bus.request_name(name, flags)
    except Exception as e:
        raise BusError(name, f"cannot request name: {e}") from e

    if reply == RequestNameReply.EXISTS:
        raise BusError(
            name,
            "another notification daemon is already running (use --replace to take over)",
            already_running=True,
        )
    if reply not in (RequestNameReply.PRIMARY_OWNER, RequestNameReply.ALREADY_OWNER):
        raise BusError(name, f"unexpected reply to name request: {reply.name}")

    logger.info("bus_name_acquired", name=name, replaced=replace)


def is_name_lost(message: Message, name: str) -> bool:
    """True if message tells us another daemon took name over."""
    return (
        message.message_type == MessageType.SIGNAL
        and message.sender == "org.freedesktop.DBus"
        and message.member == "NameLost"
        and message.body == [name]
    )
