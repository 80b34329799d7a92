from django.test import SimpleTestCase

from apps.inventory import movements
from apps.inventory.models import MovementType
from apps.utils.exceptions import InvalidInput


class PolarityTests(SimpleTestCase):
    def test_every_type_has_one_polarity(self):
        self.assertEqual(movements.INBOUND_TYPES & movements.OUTBOUND_TYPES, frozenset())
        classified = movements.INBOUND_TYPES | movements.OUTBOUND_TYPES | {MovementType.ADJUSTMENT}
        self.assertEqual(classified, set(MovementType))

    def test_inbound_and_outbound(self):
        for t in (MovementType.RECEIPT, MovementType.TRANSFER_IN, MovementType.RETURN):
            self.assertTrue(movements.is_inbound(t))
            self.assertEqual(movements.apply(t, 10, 4), 14)
        for t in (MovementType.SHIPMENT, MovementType.TRANSFER_OUT, MovementType.DAMAGE):
            self.assertTrue(movements.is_outbound(t))
            self.assertEqual(movements.apply(t, 10, 4), 6)

    def test_adjustment_sign_comes_from_snapshots(self):
        self.assertIsNone(movements.polarity(MovementType.ADJUSTMENT))
        self.assertEqual(movements.signed_delta(MovementType.ADJUSTMENT, 5, 10, 15), 5)
        self.assertEqual(movements.signed_delta(MovementType.ADJUSTMENT, 5, 10, 5), -5)
        with self.assertRaises(InvalidInput):
            movements.signed_delta(MovementType.ADJUSTMENT, 5)
        with self.assertRaises(InvalidInput):
            movements.apply(MovementType.ADJUSTMENT, 10, 5)

    def test_unknown_type(self):
        with self.assertRaises(InvalidInput):
            movements.polarity("TELEPORT")


class CheckEntryTests(SimpleTestCase):
    def test_consistent_entries_pass(self):
        movements.check_entry(MovementType.RECEIPT, 5, 10, 15)
        movements.check_entry(MovementType.DAMAGE, 5, 10, 5)
        movements.check_entry(MovementType.ADJUSTMENT, 0, 10, 10)
        movements.check_entry(MovementType.ADJUSTMENT, 3, 10, 7)

    def test_inconsistent_entries_fail(self):
        with self.assertRaises(InvalidInput):
            movements.check_entry(MovementType.RECEIPT, 5, 10, 5)
        with self.assertRaises(InvalidInput):
            movements.check_entry(MovementType.ADJUSTMENT, 2, 10, 7)
        with self.assertRaises(InvalidInput):
            movements.check_entry(MovementType.SHIPMENT, -1, 10, 11)
