#!/usr/bin/env python3
"""
Allocation Structure Unit Tests

Tests for the min-priority slot pool and the bounded wait queue.
"""

import unittest

from smartpark.domain.allocation import SlotAllocator, WaitQueue
from smartpark.domain.models import SlotReleaseError


class TestSlotAllocator(unittest.TestCase):
    """Unit tests for SlotAllocator"""

    def setUp(self):
        self.allocator = SlotAllocator(5)

    def test_acquire_returns_slots_in_ascending_order(self):
        acquired = [self.allocator.acquire() for _ in range(5)]
        self.assertEqual(acquired, [1, 2, 3, 4, 5])

    def test_acquire_returns_none_when_exhausted(self):
        for _ in range(5):
            self.allocator.acquire()
        self.assertTrue(self.allocator.is_exhausted())
        self.assertIsNone(self.allocator.acquire())

    def test_released_low_slot_is_preferred(self):
        for _ in range(4):
            self.allocator.acquire()
        self.allocator.release(3)
        self.allocator.release(1)

        self.assertEqual(self.allocator.peek(), 1)
        self.assertEqual(self.allocator.acquire(), 1)
        self.assertEqual(self.allocator.acquire(), 3)
        self.assertEqual(self.allocator.acquire(), 5)

    def test_double_release_is_rejected(self):
        slot = self.allocator.acquire()
        self.allocator.release(slot)
        with self.assertRaises(SlotReleaseError):
            self.allocator.release(slot)
        self.assertEqual(len(self.allocator), 5)

    def test_release_out_of_range(self):
        for bad in (0, 6, -1):
            with self.assertRaises(SlotReleaseError):
                self.allocator.release(bad)

    def test_free_slots_and_membership(self):
        self.allocator.acquire()
        self.allocator.acquire()
        self.assertEqual(self.allocator.free_slots(), [3, 4, 5])
        self.assertNotIn(1, self.allocator)
        self.assertIn(4, self.allocator)

    def test_reset_restores_every_slot(self):
        for _ in range(3):
            self.allocator.acquire()
        self.allocator.reset()
        self.assertEqual(self.allocator.free_slots(), [1, 2, 3, 4, 5])
        self.assertEqual(self.allocator.acquire(), 1)

    def test_invalid_capacity(self):
        with self.assertRaises(ValueError):
            SlotAllocator(0)


class TestWaitQueue(unittest.TestCase):
    """Unit tests for WaitQueue"""

    def setUp(self):
        self.queue = WaitQueue(3)

    def test_fifo_order(self):
        for vehicle_id in (7, 3, 9):
            self.assertTrue(self.queue.enqueue(vehicle_id))
        self.assertEqual(self.queue.dequeue_front(), 7)
        self.assertEqual(self.queue.dequeue_front(), 3)
        self.assertEqual(self.queue.dequeue_front(), 9)
        self.assertIsNone(self.queue.dequeue_front())

    def test_enqueue_refused_at_capacity(self):
        for vehicle_id in (1, 2, 3):
            self.queue.enqueue(vehicle_id)
        self.assertTrue(self.queue.is_full())
        self.assertFalse(self.queue.enqueue(4))
        self.assertEqual(self.queue.snapshot(), [1, 2, 3])

    def test_remove_by_id_keeps_order(self):
        for vehicle_id in (1, 2, 3):
            self.queue.enqueue(vehicle_id)
        self.assertTrue(self.queue.remove_by_id(2))
        self.assertEqual(self.queue.snapshot(), [1, 3])
        self.assertFalse(self.queue.remove_by_id(2))

    def test_position_of(self):
        self.queue.enqueue(10)
        self.queue.enqueue(20)
        self.assertEqual(self.queue.position_of(10), 1)
        self.assertEqual(self.queue.position_of(20), 2)
        self.assertIsNone(self.queue.position_of(30))

    def test_enqueue_front(self):
        self.queue.enqueue(1)
        self.queue.enqueue(2)
        front = self.queue.dequeue_front()
        self.assertTrue(self.queue.enqueue_front(front))
        self.assertEqual(self.queue.snapshot(), [1, 2])

    def test_clear_returns_drained_items(self):
        self.queue.enqueue(5)
        self.queue.enqueue(6)
        self.assertEqual(self.queue.clear(), [5, 6])
        self.assertTrue(self.queue.is_empty())
        self.assertEqual(len(self.queue), 0)


if __name__ == '__main__':
    unittest.main()
