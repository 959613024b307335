"""Cart store: authoritative in-memory cart state with gated persistence."""
import asyncio
import inspect
import uuid
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, List, Optional, Set, Tuple, Union

from pydantic import TypeAdapter, ValidationError

from corgicart.errors import ERROR_NEEDS_EVENT_LOOP
from corgicart.logging import get_logger, sanitize_id_for_logging, sanitize_string_for_logging
from corgicart.models import CartSnapshot, LineItemCandidate
from .keys import key_for
from .models import CartLineItem, CartRecords, CartState
from .notifications import NotificationCounter
from .storage import PersistenceAdapter

logger = get_logger(__name__)

Listener = Callable[[CartState], None]


class StoreStatus(str, Enum):
    """Hydration lifecycle. READY is terminal."""
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


def new_line_item_id(catalog_item_id: str) -> str:
    return f"{catalog_item_id}_{uuid.uuid4().hex[:12]}"


_quantity_adapter = TypeAdapter(int)


def _whole_quantity(value) -> Optional[int]:
    """Lax int validation (2.0 and "2" pass, 2.5 does not). None when invalid."""
    # bool is an int subclass, True is not a quantity
    if isinstance(value, bool):
        return None
    try:
        return _quantity_adapter.validate_python(value)
    except ValidationError:
        return None


class CartStore:
    """
    Owns the cart line items and the notification counter for one session.

    Features:
    - Equivalent selections (same configuration key) merge into one line item
    - Mutations are synchronous and never fail; unknown ids are no-ops
    - Loads persisted state once on construction and saves after every
      mutation, but never before that first load has finished

    Mutations made while the load is still running are applied to memory
    right away and journaled. When the load finishes the persisted records
    become the base state and the journal is replayed on top of them, so
    neither the stored cart nor the early mutations are lost.
    """

    def __init__(
        self,
        persistence: PersistenceAdapter,
        id_factory: Callable[[str], str] = new_line_item_id,
    ):
        self._persistence = persistence
        self._new_id = id_factory
        self._items: List[CartLineItem] = []
        self._notifications = NotificationCounter()
        self._status = StoreStatus.UNINITIALIZED
        self._journal: List[Tuple] = []
        self._listeners: List[Listener] = []
        self._load_task: Optional[asyncio.Task] = None
        self._save_tasks: Set[asyncio.Task] = set()
        self._save_lock: Optional[asyncio.Lock] = None

        self._begin_load()

    # -------------------------------------------------------------------
    # Hydration
    # -------------------------------------------------------------------
    def _begin_load(self) -> None:
        self._status = StoreStatus.LOADING
        try:
            result = self._persistence.load()
        except Exception as e:
            logger.error(f"Cart load failed, starting empty: {e}")
            self._finish_load(CartRecords())
            return

        if not inspect.isawaitable(result):
            self._finish_load(result)
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(result):
                result.close()
            raise RuntimeError(ERROR_NEEDS_EVENT_LOOP) from None
        self._load_task = loop.create_task(self._await_load(result))

    async def _await_load(self, pending) -> None:
        try:
            records = await pending
        except Exception as e:
            logger.error(f"Cart load failed, starting empty: {e}")
            records = CartRecords()
        self._finish_load(records)

    def _finish_load(self, records: CartRecords) -> None:
        if self._status is StoreStatus.READY:
            return

        self._items = []
        for item in records.line_items:
            self._seed(item)
        self._notifications = NotificationCounter(records.notification_count)

        journal, self._journal = self._journal, []
        aliases: Dict[str, str] = {}
        for entry in journal:
            self._replay(entry, aliases)

        self._status = StoreStatus.READY
        logger.info(
            f"Cart hydrated: {len(records.line_items)} stored line items, "
            f"{len(journal)} early mutations replayed"
        )

        if journal:
            self._persist()
        self._notify()

    def _seed(self, item: CartLineItem) -> None:
        # Older records may hold two entries for one configuration
        key = key_for(item)
        existing = self._find_by_key(key)
        if existing is not None:
            logger.warning(
                f"Merging duplicate stored line item {sanitize_id_for_logging(item.id)}"
            )
            existing.quantity += item.quantity
            return
        self._items.append(item.copy())

    def _replay(self, entry: Tuple, aliases: Dict[str, str]) -> None:
        op = entry[0]
        if op == "add":
            _, candidate, quantity, line_item_id = entry
            resulting_id = self._apply_add(candidate, quantity, line_item_id)
            if resulting_id != line_item_id:
                aliases[line_item_id] = resulting_id
        elif op == "remove":
            self._apply_remove(aliases.get(entry[1], entry[1]))
        elif op == "update":
            self._apply_update(aliases.get(entry[1], entry[1]), entry[2])
        elif op == "clear":
            self._items = []
        elif op == "clear_notifications":
            self._notifications.reset()

    @property
    def status(self) -> StoreStatus:
        return self._status

    @property
    def is_loaded(self) -> bool:
        return self._status is StoreStatus.READY

    async def wait_until_ready(self) -> None:
        """Wait for the initial load (returns at once for synchronous storage)."""
        if self._load_task is not None:
            await self._load_task

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def _find_by_key(self, key: str) -> Optional[CartLineItem]:
        return next((item for item in self._items if key_for(item) == key), None)

    def _find(self, line_item_id: str) -> Optional[CartLineItem]:
        return next((item for item in self._items if item.id == line_item_id), None)

    def _generate_id(self, catalog_item_id: str) -> str:
        taken = {item.id for item in self._items}
        line_item_id = self._new_id(catalog_item_id)
        while line_item_id in taken:
            line_item_id = self._new_id(catalog_item_id)
        return line_item_id

    def _apply_add(
        self,
        candidate: LineItemCandidate,
        quantity: int,
        line_item_id: Optional[str] = None,
    ) -> str:
        existing = self._find_by_key(key_for(candidate))
        if existing is not None:
            existing.quantity += quantity
            resulting_id = existing.id
        else:
            if line_item_id is None or self._find(line_item_id) is not None:
                line_item_id = self._generate_id(candidate.catalog_item_id)
            self._items.append(candidate.to_line_item(line_item_id, quantity))
            resulting_id = line_item_id

        self._notifications.increment()
        return resulting_id

    def _apply_remove(self, line_item_id: str) -> bool:
        remaining = [item for item in self._items if item.id != line_item_id]
        if len(remaining) == len(self._items):
            return False
        self._items = remaining
        return True

    def _apply_update(self, line_item_id: str, new_quantity: int) -> bool:
        if new_quantity <= 0:
            return self._apply_remove(line_item_id)
        item = self._find(line_item_id)
        if item is None:
            return False
        item.quantity = new_quantity
        return True

    def _mutated(self, entry: Tuple, changed: bool = True) -> None:
        if self._status is not StoreStatus.READY:
            # State is incomplete until the load lands; replay will decide
            self._journal.append(entry)
        elif changed:
            self._persist()
        if changed:
            self._notify()

    def add_line_item(
        self,
        candidate: Union[LineItemCandidate, dict],
        quantity: int = 1,
    ) -> CartState:
        """
        Add a selection to the cart (or increase quantity if already present).

        Args:
            candidate: Resolved selection; dicts are validated into LineItemCandidate
            quantity: Units to add; values below 1, and values that are not a
                whole number, count as 1

        Returns:
            Cart state after the addition
        """
        if not isinstance(candidate, LineItemCandidate):
            candidate = LineItemCandidate.model_validate(candidate)
        whole = _whole_quantity(quantity)
        if whole is None:
            logger.warning(
                f"Add quantity {sanitize_string_for_logging(repr(quantity))} "
                f"is not a whole number, adding 1"
            )
            whole = 1
        quantity = max(1, whole)

        line_item_id = self._apply_add(candidate, quantity)
        logger.debug(
            f"Added {quantity} x {sanitize_id_for_logging(candidate.catalog_item_id)} "
            f"as {sanitize_id_for_logging(line_item_id)}"
        )
        self._mutated(("add", candidate, quantity, line_item_id))
        return self.state

    def remove_line_item(self, line_item_id: str) -> CartState:
        """Remove a line item. Unknown ids are ignored."""
        changed = self._apply_remove(line_item_id)
        if not changed:
            logger.debug(f"Remove ignored, no line item {sanitize_id_for_logging(line_item_id)}")
        self._mutated(("remove", line_item_id), changed)
        return self.state

    def update_quantity(self, line_item_id: str, new_quantity: int) -> CartState:
        """
        Set the quantity of a line item.

        A quantity of 0 or less removes the item. Unknown ids, and quantities
        that are not whole numbers, are ignored.
        """
        whole = _whole_quantity(new_quantity)
        if whole is None:
            logger.warning(
                f"Update ignored, quantity {sanitize_string_for_logging(repr(new_quantity))} "
                f"is not a whole number"
            )
            return self.state
        new_quantity = whole

        changed = self._apply_update(line_item_id, new_quantity)
        if not changed:
            logger.debug(f"Update ignored, no line item {sanitize_id_for_logging(line_item_id)}")
        self._mutated(("update", line_item_id, new_quantity), changed)
        return self.state

    def clear(self) -> CartState:
        """Remove every line item. The notification counter is left alone."""
        self._items = []
        self._mutated(("clear",))
        return self.state

    def clear_notifications(self) -> None:
        """Reset the notification counter. Cart contents are left alone."""
        self._notifications.reset()
        self._mutated(("clear_notifications",))

    # -------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------
    def _records(self) -> CartRecords:
        return CartRecords(
            line_items=[item.copy() for item in self._items],
            notification_count=self._notifications.value,
        )

    def _persist(self) -> None:
        try:
            result = self._persistence.save(self._records())
        except Exception as e:
            logger.error(f"Cart save failed: {e}")
            return

        if inspect.isawaitable(result):
            self._schedule_save(result)

    def _schedule_save(self, pending) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(pending):
                pending.close()
            logger.error(f"Cart save skipped: {ERROR_NEEDS_EVENT_LOOP}")
            return

        if self._save_lock is None:
            self._save_lock = asyncio.Lock()
        task = loop.create_task(self._run_save(pending))
        self._save_tasks.add(task)
        task.add_done_callback(self._save_tasks.discard)

    async def _run_save(self, pending) -> None:
        # Lock is FIFO, so saves land in the order the mutations happened
        async with self._save_lock:
            try:
                await pending
            except Exception as e:
                logger.error(f"Cart save failed: {e}")

    async def flush(self) -> None:
        """Wait for the initial load and every save scheduled so far."""
        await self.wait_until_ready()
        while self._save_tasks:
            await asyncio.gather(*list(self._save_tasks))

    # -------------------------------------------------------------------
    # Observers
    # -------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call `listener(state)` after every change and once hydration completes.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        state = self.state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Cart listener failed")

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    @property
    def line_items(self) -> Tuple[CartLineItem, ...]:
        """Ordered copies of the current line items."""
        return tuple(item.copy() for item in self._items)

    @property
    def state(self) -> CartState:
        return CartState(line_items=self.line_items)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self._items)

    @property
    def total_price(self) -> Decimal:
        return CartState(line_items=tuple(self._items)).total_price

    @property
    def notification_count(self) -> int:
        return self._notifications.value

    def get_line_item(self, line_item_id: str) -> Optional[CartLineItem]:
        item = self._find(line_item_id)
        return item.copy() if item is not None else None

    def snapshot(self, currency: str = "THB") -> CartSnapshot:
        """Read model handed to checkout."""
        return CartSnapshot.build(self.state, self.notification_count, self.is_loaded, currency)
