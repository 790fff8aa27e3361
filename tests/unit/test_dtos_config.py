#!/usr/bin/env python3
"""
DTO and Configuration Unit Tests
"""

import os
import tempfile
import unittest
from decimal import Decimal
from unittest.mock import patch

from pydantic import ValidationError

from smartpark.application.dtos import (
    FacilityConfig, MoneyDTO, EntryResultDTO, EntryOutcomeDTO, HistoryRecordDTO
)
from smartpark.domain.models import ErrorKind, Money
from smartpark.infrastructure.config import (
    ConfigurationError, load_config, load_env_settings, load_yaml_settings
)


class TestFacilityConfig(unittest.TestCase):
    """Unit tests for FacilityConfig"""

    def test_defaults(self):
        config = FacilityConfig()
        self.assertEqual(config.slot_count, 10)
        self.assertEqual(config.wait_capacity, 10)
        self.assertEqual(config.max_vehicles, 100)
        self.assertEqual(config.hourly_rate, Money(50, "INR"))

    def test_non_positive_sizes_rejected(self):
        for field_name in ("slot_count", "wait_capacity", "max_vehicles"):
            with self.assertRaises(ValidationError, msg=field_name):
                FacilityConfig(**{field_name: 0})

    def test_currency_normalised(self):
        self.assertEqual(FacilityConfig(currency="usd").currency, "USD")
        with self.assertRaises(ValidationError):
            FacilityConfig(currency="U5D")

    def test_config_is_frozen(self):
        config = FacilityConfig()
        with self.assertRaises(ValidationError):
            config.slot_count = 3


class TestResultDTOs(unittest.TestCase):

    def test_entry_result_serialization(self):
        result = EntryResultDTO(success=True, vehicle_id=5, outcome=EntryOutcomeDTO.PARKED, slot=1)
        data = result.to_dict(exclude_none=True)
        self.assertEqual(data["outcome"], "parked")
        self.assertNotIn("queue_position", data)

        restored = EntryResultDTO.from_json(result.to_json())
        self.assertEqual(restored.slot, 1)

    def test_error_kind_compares_with_enum(self):
        result = EntryResultDTO(success=False, error_kind=ErrorKind.FACILITY_FULL)
        self.assertEqual(result.error_kind, ErrorKind.FACILITY_FULL)

    def test_money_dto(self):
        dto = MoneyDTO.from_money(Money(Decimal("150")))
        self.assertEqual(dto.format(), "INR 150.00")

    def test_history_record_dto_open(self):
        from datetime import datetime
        dto = HistoryRecordDTO(vehicle_id=1, slot=1, entry_time=datetime(2024, 1, 1))
        self.assertTrue(dto.is_open)


class TestConfigLoading(unittest.TestCase):
    """Unit tests for YAML/env configuration loading"""

    def _write_yaml(self, text):
        handle = tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False)
        handle.write(text)
        handle.close()
        self.addCleanup(os.unlink, handle.name)
        return handle.name

    def test_yaml_with_section(self):
        path = self._write_yaml("smartpark:\n  slot_count: 4\n  fee_per_hour: 20\n")
        self.assertEqual(load_yaml_settings(path), {"slot_count": 4, "fee_per_hour": 20})

    def test_yaml_unknown_keys_ignored(self):
        path = self._write_yaml("slot_count: 4\ncolour: blue\n")
        with self.assertLogs("smartpark.infrastructure.config", level="WARNING"):
            settings = load_yaml_settings(path)
        self.assertEqual(settings, {"slot_count": 4})

    def test_yaml_must_be_mapping(self):
        path = self._write_yaml("- 1\n- 2\n")
        with self.assertRaises(ConfigurationError):
            load_yaml_settings(path)

    def test_missing_file(self):
        with self.assertRaises(ConfigurationError):
            load_yaml_settings("/nonexistent/smartpark.yaml")

    def test_env_settings(self):
        environ = {"SMARTPARK_WAIT_CAPACITY": "3", "SMARTPARK_CURRENCY": "", "OTHER": "x"}
        self.assertEqual(load_env_settings(environ), {"wait_capacity": "3"})

    def test_precedence(self):
        path = self._write_yaml("slot_count: 4\nwait_capacity: 2\nmax_vehicles: 20\n")
        environ = {"SMARTPARK_WAIT_CAPACITY": "6"}
        config = load_config(path, environ=environ, max_vehicles=50, fee_per_hour=None)

        self.assertEqual(config.slot_count, 4)
        self.assertEqual(config.wait_capacity, 6)
        self.assertEqual(config.max_vehicles, 50)
        self.assertEqual(config.fee_per_hour, Decimal("50"))

    def test_invalid_values_raise_configuration_error(self):
        with self.assertRaises(ConfigurationError):
            load_config(environ={}, slot_count=0)

    @patch.dict(os.environ, {"SMARTPARK_SLOT_COUNT": "7"}, clear=False)
    def test_process_environment_used_by_default(self):
        self.assertEqual(load_config().slot_count, 7)


if __name__ == '__main__':
    unittest.main()
