import unittest
from datetime import datetime, timedelta, timezone

from hamcrest import assert_that, contains_exactly, empty, equal_to, is_

from df1connector.change import ChangeDetector, ValueChange, values_equal


class ValuesEqualTest(unittest.TestCase):

    def test_equal_sequences(self):
        assert_that(values_equal([1, 2, 3], [1, 2, 3]), is_(True))
        assert_that(values_equal((1, 2, 3), [1, 2, 3]), is_(True))

    def test_different_sequences(self):
        assert_that(values_equal([1, 2, 3], [1, 2, 4]), is_(False))
        assert_that(values_equal([1, 2, 3], [1, 2]), is_(False))

    def test_sequence_elements_compare_strictly(self):
        assert_that(values_equal([True, 0], [1, 0]), is_(False))
        assert_that(values_equal([[1]], [[1]]), is_(False))

    def test_dates_with_the_same_instant(self):
        a = datetime(2021, 3, 1, 12, 0, tzinfo=timezone.utc)
        b = datetime(2021, 3, 1, 13, 0, tzinfo=timezone(timedelta(hours=1)))
        assert_that(values_equal(a, b), is_(True))
        assert_that(values_equal(a, a + timedelta(milliseconds=1)), is_(False))

    def test_none_against_zero(self):
        assert_that(values_equal(None, 0), is_(False))
        assert_that(values_equal(0, None), is_(False))
        assert_that(values_equal(None, None), is_(True))

    def test_scalars(self):
        assert_that(values_equal(5, 5), is_(True))
        assert_that(values_equal(5, 5.0), is_(True))
        assert_that(values_equal(5, 6), is_(False))
        assert_that(values_equal("a", "a"), is_(True))
        assert_that(values_equal(True, True), is_(True))
        assert_that(values_equal(True, 1), is_(False))
        assert_that(values_equal("1", 1), is_(False))
        assert_that(values_equal(float('nan'), float('nan')), is_(False))

    def test_other_objects_only_when_identical(self):
        d = {'a': 1}
        assert_that(values_equal(d, d), is_(True))
        assert_that(values_equal(d, {'a': 1}), is_(False))

    def test_date_against_number(self):
        assert_that(values_equal(datetime(2021, 1, 1), 0), is_(False))


class ChangeDetectorTest(unittest.TestCase):

    def setUp(self):
        self.sut = ChangeDetector()

    def test_first_read_is_all_changes_in_order(self):
        changes = self.sut.update({'b': 2, 'a': 1})
        assert_that(changes, contains_exactly(ValueChange('b', 2), ValueChange('a', 1)))

    def test_unchanged_values_are_not_reported(self):
        self.sut.update({'a': 1, 'b': [1, 2, 3]})
        assert_that(self.sut.update({'a': 1, 'b': [1, 2, 3]}), is_(empty()))

    def test_only_changed_values_are_reported(self):
        self.sut.update({'a': 1, 'b': [1, 2, 3]})
        assert_that(self.sut.update({'a': 1, 'b': [1, 2, 4]}), is_([ValueChange('b', [1, 2, 4])]))
        assert_that(self.sut.snapshot(), is_(equal_to({'a': 1, 'b': [1, 2, 4]})))

    def test_cache_is_not_cleared_by_partial_reads(self):
        self.sut.update({'a': 1, 'b': 2})
        self.sut.update({'b': 3})
        assert_that(self.sut.snapshot(), is_({'a': 1, 'b': 3}))
        assert_that(self.sut.update({'a': 1}), is_(empty()))
        assert_that(len(self.sut), is_(2))

    def test_cached_sequences_are_copies(self):
        value = [1, 2, 3]
        self.sut.update({'a': value})
        value.append(4)
        assert_that(self.sut.update({'a': [1, 2, 3]}), is_(empty()))

    def test_snapshot_is_a_copy(self):
        self.sut.update({'a': 1})
        self.sut.snapshot()['a'] = 2
        assert_that(self.sut.snapshot(), is_({'a': 1}))

    def test_value_change_repr(self):
        assert_that(repr(ValueChange('a', 1)), is_("ValueChange('a', 1)"))
