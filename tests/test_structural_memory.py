import dataclasses
import unittest

from seismic_simulator.core.memory import (
    StructuralMemory,
    create_fresh_memory,
    update_structural_memory,
)


class TestStructuralMemory(unittest.TestCase):
    def test_fresh_memory(self):
        m = create_fresh_memory()
        self.assertEqual(m.total_damage_history, 0.0)
        self.assertEqual(m.fatigue_multiplier, 1.0)
        self.assertEqual(m.previous_quakes, 0)
        self.assertEqual(m.residual_drift, 0.0)

    def test_single_update(self):
        m = update_structural_memory(create_fresh_memory(), 20.0)
        self.assertAlmostEqual(m.total_damage_history, 20.0)
        self.assertAlmostEqual(m.fatigue_multiplier, 1.2)
        self.assertEqual(m.previous_quakes, 1)
        self.assertAlmostEqual(m.residual_drift, 2.0)
        self.assertEqual(m.healing_factor, 0.0)

    def test_new_damage_is_amplified_by_fatigue(self):
        m = StructuralMemory(total_damage_history=10.0, fatigue_multiplier=2.0)
        m2 = update_structural_memory(m, 5.0)
        self.assertAlmostEqual(m2.total_damage_history, 20.0)

    def test_fatigue_monotone_and_capped(self):
        m = create_fresh_memory()
        previous = m.fatigue_multiplier
        for _ in range(100):
            m = update_structural_memory(m, 15.0)
            self.assertGreaterEqual(m.fatigue_multiplier, previous)
            self.assertLessEqual(m.fatigue_multiplier, 3.0)
            previous = m.fatigue_multiplier
        self.assertEqual(m.fatigue_multiplier, 3.0)
        self.assertEqual(m.total_damage_history, 100.0)
        self.assertEqual(m.previous_quakes, 100)

    def test_residual_drift_is_not_capped(self):
        m = create_fresh_memory()
        for _ in range(50):
            m = update_structural_memory(m, 80.0)
        self.assertAlmostEqual(m.residual_drift, 400.0)

    def test_healing(self):
        m = StructuralMemory(total_damage_history=50.0)
        healed = update_structural_memory(m, 0.0, hours_since_last=500.0)
        self.assertAlmostEqual(healed.healing_factor, 0.5)
        self.assertAlmostEqual(healed.total_damage_history, 25.0)

        capped = update_structural_memory(m, 0.0, hours_since_last=5000.0)
        self.assertAlmostEqual(capped.healing_factor, 1.0)
        self.assertAlmostEqual(capped.total_damage_history, 0.0)

    def test_input_record_unchanged(self):
        m = create_fresh_memory()
        update_structural_memory(m, 30.0)
        self.assertEqual(m, create_fresh_memory())
        with self.assertRaises(dataclasses.FrozenInstanceError):
            m.previous_quakes = 3  # type: ignore[misc]

    def test_negative_inputs_rejected(self):
        with self.assertRaises(ValueError):
            update_structural_memory(create_fresh_memory(), -1.0)
        with self.assertRaises(ValueError):
            update_structural_memory(create_fresh_memory(), 1.0, hours_since_last=-2.0)

    def test_dict_roundtrip(self):
        m = update_structural_memory(create_fresh_memory(), 12.0, 10.0)
        self.assertEqual(StructuralMemory.from_dict(m.to_dict()), m)


if __name__ == "__main__":
    unittest.main()
