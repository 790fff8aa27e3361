# File: smartpark/domain/allocation.py
"""
Slot Allocation Structures

1. SlotAllocator - min-priority pool of free slot numbers
2. WaitQueue - bounded FIFO of vehicles waiting for a slot

SlotAllocator always hands out the smallest free slot, so a low-numbered
slot freed by a departure is preferred over any higher-numbered one.
Both structures only hold integers; ownership of who sits where belongs to
the ParkingLedger aggregate.
"""

from collections import deque
from typing import Deque, List, Optional, Set
import heapq
import logging

from .models import SlotReleaseError


# ============================================================================
# SLOT ALLOCATOR
# ============================================================================

class SlotAllocator:
    """
    Min-heap of free slots in the range 1..capacity

    acquire() and release() run in O(log n). A shadow set mirrors the heap
    so membership checks and double-release detection are O(1).
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"Slot capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._heap: List[int] = []
        self._free: Set[int] = set()
        self._logger = logging.getLogger(self.__class__.__name__)
        self.reset()

    @property
    def capacity(self) -> int:
        return self._capacity

    def reset(self) -> None:
        """Return every slot to the free pool"""
        self._heap = list(range(1, self._capacity + 1))
        heapq.heapify(self._heap)
        self._free = set(self._heap)
        self._logger.debug(f"Slot pool reset to {self._capacity} free slots")

    def acquire(self) -> Optional[int]:
        """Remove and return the smallest free slot, or None when exhausted"""
        if not self._heap:
            return None
        slot = heapq.heappop(self._heap)
        self._free.discard(slot)
        self._logger.debug(f"Acquired slot {slot}")
        return slot

    def release(self, slot: int) -> None:
        """Put a slot back into the free pool"""
        if not 1 <= slot <= self._capacity:
            raise SlotReleaseError(f"Slot {slot} is outside 1..{self._capacity}")
        if slot in self._free:
            raise SlotReleaseError(f"Slot {slot} is already free")
        heapq.heappush(self._heap, slot)
        self._free.add(slot)
        self._logger.debug(f"Released slot {slot}")

    def peek(self) -> Optional[int]:
        """Smallest free slot without removing it"""
        return self._heap[0] if self._heap else None

    def free_slots(self) -> List[int]:
        return sorted(self._free)

    def is_exhausted(self) -> bool:
        return not self._heap

    def __contains__(self, slot: int) -> bool:
        return slot in self._free

    def __len__(self) -> int:
        return len(self._heap)

    def __repr__(self) -> str:
        return f"SlotAllocator(capacity={self._capacity}, free={len(self)})"


# ============================================================================
# WAIT QUEUE
# ============================================================================

class WaitQueue:
    """
    Bounded FIFO of vehicle ids

    Supports removal of an arbitrary member (a waiting driver who gives up)
    while keeping the relative order of everybody else.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"Wait queue capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._items: Deque[int] = deque()
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def capacity(self) -> int:
        return self._capacity

    def size(self) -> int:
        return len(self._items)

    def is_full(self) -> bool:
        return len(self._items) >= self._capacity

    def is_empty(self) -> bool:
        return not self._items

    def enqueue(self, vehicle_id: int) -> bool:
        """Append at the back; False when the queue is at capacity"""
        if self.is_full():
            self._logger.debug(f"Queue full, cannot enqueue vehicle {vehicle_id}")
            return False
        self._items.append(vehicle_id)
        return True

    def enqueue_front(self, vehicle_id: int) -> bool:
        """Put a vehicle back at the head of the line"""
        if self.is_full():
            return False
        self._items.appendleft(vehicle_id)
        return True

    def dequeue_front(self) -> Optional[int]:
        """Remove and return the earliest-enqueued vehicle"""
        if not self._items:
            return None
        return self._items.popleft()

    def remove_by_id(self, vehicle_id: int) -> bool:
        """Remove a vehicle from anywhere in the queue"""
        try:
            self._items.remove(vehicle_id)
        except ValueError:
            return False
        self._logger.debug(f"Removed vehicle {vehicle_id} from wait queue")
        return True

    def position_of(self, vehicle_id: int) -> Optional[int]:
        """1-based position of a vehicle, or None if it is not queued"""
        for index, queued in enumerate(self._items, start=1):
            if queued == vehicle_id:
                return index
        return None

    def snapshot(self) -> List[int]:
        """Queued vehicles in FIFO order"""
        return list(self._items)

    def clear(self) -> List[int]:
        """Empty the queue and return what was in it"""
        drained = list(self._items)
        self._items.clear()
        return drained

    def __contains__(self, vehicle_id: int) -> bool:
        return vehicle_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"WaitQueue({self.size()}/{self._capacity})"
