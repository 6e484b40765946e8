import pytest

from salesdash.reporting.aggregator import Summary
from salesdash.reporting.comparator import format_growth, diff_percent, summary_growth, compare_totals, merge_rows


class TestFormatGrowth:
    """测试增长率格式化"""

    @pytest.mark.parametrize('current, previous, expected', [
        (0, 0, '0.0%'),
        (5, 0, '+100.0%'),
        (50, 100, '-50.0%'),
        (150, 100, '+50.0%'),
        (100, 100, '+0.0%'),
        (1, 3, '-66.7%'),
        (2, 3, '-33.3%'),
    ])
    def test_row_format(self, current, previous, expected):
        assert format_growth(current, previous) == expected

    def test_summary_format_has_no_percent(self):
        assert format_growth(5, 0, with_percent=False) == '+100.0'
        assert format_growth(0, 0, with_percent=False) == '0.0'
        assert format_growth(50, 100, with_percent=False) == '-50.0'

    def test_ties_round_away_from_zero(self):
        # 1.25 可精确表示
        assert format_growth(101.25, 100) == '+1.3%'
        assert format_growth(98.75, 100) == '-1.3%'

    def test_tiny_decline_keeps_sign(self):
        assert format_growth(99.99, 100) == '-0.0%'

    def test_negative_current_with_zero_previous(self):
        assert format_growth(-5, 0) == '0.0%'


class TestDiffPercent:
    """测试核对差异百分比"""

    @pytest.mark.parametrize('actual, expected, text', [
        (0, 0, '0.00%'),
        (3, 0, '∞'),
        (100, 100, '+0.00%'),
        (280, 160, '+75.00%'),
        (1, 3, '-66.67%'),
    ])
    def test_format(self, actual, expected, text):
        assert diff_percent(actual, expected) == text


class TestCompareTotals:
    """测试汇总对比"""

    def test_growth_for_every_metric(self):
        current = Summary(total_orders=1, total_revenue=100.0, total_quantity=2)
        previous = Summary()

        result = compare_totals(current, previous)

        assert result['current'] == {
            'total_orders': 1, 'total_revenue': 100.0, 'total_quantity': 2, 'avg_order_value': 100.0
        }
        assert result['previous']['total_orders'] == 0
        assert result['growth'] == {
            'orders': '+100.0', 'revenue': '+100.0', 'quantity': '+100.0', 'avg_order_value': '+100.0'
        }
        assert 'previous_year' not in result
        assert 'year_over_year_growth' not in result

    def test_year_over_year(self):
        current = Summary(total_orders=4, total_revenue=400.0, total_quantity=8)
        previous_year = Summary(total_orders=2, total_revenue=100.0, total_quantity=8)

        result = compare_totals(current, current, previous_year)

        assert result['growth']['revenue'] == '+0.0'
        assert result['year_over_year_growth'] == {
            'orders': '+100.0', 'revenue': '+300.0', 'quantity': '+0.0', 'avg_order_value': '+100.0'
        }

    def test_identical_summaries(self):
        summary = Summary(total_orders=3, total_revenue=75.5, total_quantity=9)
        assert set(summary_growth(summary, summary).values()) == {'+0.0'}


class TestMergeRows:
    """测试明细合并"""

    def test_missing_counterpart_is_zero(self):
        current = [{'site_id': 'a', 'orders': 2, 'revenue': 50.0, 'quantity': 4, 'rank': 1}]
        previous = [{'site_id': 'b', 'orders': 1, 'revenue': 10.0, 'quantity': 1}]

        merged = merge_rows(current, previous, 'site_id')

        row = merged[0]
        assert row['rank'] == 1
        assert row['previous_orders'] == 0
        assert row['previous_revenue'] == 0
        assert row['orders_growth'] == '+100.0%'
        assert row['revenue_growth'] == '+100.0%'
        assert 'previous_year_orders' not in row
        assert 'yoy_orders_growth' not in row

    def test_only_current_keys_are_returned(self):
        merged = merge_rows([], [{'country': 'US', 'orders': 1, 'revenue': 1.0, 'quantity': 1}], 'country')
        assert merged == []

    def test_year_over_year_fields(self):
        current = [{'country': 'US', 'orders': 3, 'revenue': 300.0, 'quantity': 6}]
        previous = [{'country': 'US', 'orders': 6, 'revenue': 600.0, 'quantity': 6}]
        previous_year = [{'country': 'US', 'orders': 2, 'revenue': 200.0, 'quantity': 6}]

        row = merge_rows(current, previous, 'country', previous_year)[0]

        assert row['orders_growth'] == '-50.0%'
        assert row['previous_year_revenue'] == 200.0
        assert row['yoy_orders_growth'] == '+50.0%'
        assert row['yoy_quantity_growth'] == '+0.0%'

    def test_identical_data_has_zero_growth(self):
        rows = [
            {'product_group': 'Yoga Mat', 'orders': 3, 'revenue': 120.0, 'quantity': 5},
            {'product_group': 'Surprise Box', 'orders': 1, 'revenue': 59.0, 'quantity': 6},
        ]
        for row in merge_rows(rows, rows, 'product_group', rows):
            assert row['orders_growth'] == row['revenue_growth'] == row['quantity_growth'] == '+0.0%'
            assert row['yoy_revenue_growth'] == '+0.0%'

    def test_does_not_mutate_input(self):
        current = [{'site_id': 'a', 'orders': 1, 'revenue': 1.0, 'quantity': 1}]
        merge_rows(current, [], 'site_id')
        assert 'orders_growth' not in current[0]
