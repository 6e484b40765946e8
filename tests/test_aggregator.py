import pytest

from salesdash.reporting.aggregator import OrderAggregator, Summary


@pytest.fixture
def aggregator(classifier):
    return OrderAggregator(classifier)


class TestSummary:
    """测试汇总与订单去重"""

    def test_duplicate_orders_count_once(self, aggregator, make_order):
        orders = [make_order(1, total=100.0), make_order(1, total=100.0)]

        summary = aggregator.summarize(orders)

        assert summary.total_orders == 1
        assert summary.total_revenue == 100.0
        # 重复记录的商品销量仍然累加
        assert summary.total_quantity == 4
        assert summary.avg_order_value == 100.0

    def test_same_id_on_different_sites(self, aggregator, make_order):
        orders = [make_order(1, site_name='store-us'), make_order(1, site_name='store-de')]
        assert aggregator.summarize(orders).total_orders == 2

    def test_empty(self, aggregator):
        summary = aggregator.summarize([])
        assert summary.to_dict() == {
            'total_orders': 0,
            'total_revenue': 0.0,
            'total_quantity': 0,
            'avg_order_value': 0,
        }

    def test_converted_quantity(self, aggregator, make_order):
        orders = [
            make_order(1, site_name='store-us', items=[('SB', 'Surprise Box', 2, 50.0)]),
            make_order(2, site_name='store-wholesale', items=[('MAT', 'Yoga Mat - Blue', 3, 90.0)]),
            make_order(3, site_name='outlet-shop', items=[('SB', 'Surprise Box', 1, 25.0)]),
        ]
        # 2*6 + 3*10 + 1*1
        assert aggregator.summarize(orders).total_quantity == 43


class TestBySite:
    """测试按站点聚合"""

    def test_rank_and_percentage(self, aggregator, make_order):
        orders = [
            make_order(1, site_name='store-de', total=100.0),
            make_order(2, site_name='store-us', total=300.0),
            make_order(3, site_name='store-es', total=100.0),
        ]

        rows = aggregator.by_site(orders)

        assert [row['site_name'] for row in rows] == ['store-us', 'store-de', 'store-es']
        assert [row['rank'] for row in rows] == [1, 2, 3]
        assert [row['revenue_percentage'] for row in rows] == [60.0, 20.0, 20.0]

    def test_unknown_channel_is_dropped(self, aggregator, make_order):
        rows = aggregator.by_site([make_order(1, site_name='outlet-shop'), make_order(2)])
        assert [row['site_name'] for row in rows] == ['store-us']
        assert rows[0]['channel_type'] == 'retail'

    def test_zero_revenue_percentage(self, aggregator, make_order):
        rows = aggregator.by_site([make_order(1, total=0.0)])
        assert rows[0]['revenue_percentage'] == 0


class TestByCountry:
    """测试按国家聚合"""

    def test_country_fallbacks(self, aggregator, make_order):
        orders = [
            make_order(1, shipping_country='DE', billing_country='FR', total=50.0),
            make_order(2, shipping_country=None, billing_country='FR', total=80.0),
            make_order(3, shipping_country=None, billing_country=None, total=10.0),
        ]

        rows = aggregator.by_country(orders)

        assert [row['country'] for row in rows] == ['FR', 'DE', 'Unknown']
        assert rows[0]['country_name'] == '法国'
        assert rows[2]['country_name'] == '未知'

    def test_channel_quantities_and_sites(self, aggregator, make_order):
        orders = [
            make_order(1, site_name='store-us', shipping_country='US'),
            make_order(2, site_name='store-wholesale', shipping_country='US',
                       items=[('MAT', 'Yoga Mat', 1, 100.0)]),
            make_order(3, site_name='outlet-shop', shipping_country='US'),
        ]

        row = aggregator.by_country(orders)[0]

        assert row['orders'] == 3
        assert row['retail_quantity'] == 2
        assert row['wholesale_quantity'] == 10
        assert row['quantity'] == 14
        assert row['sites'] == ['store-us', 'store-wholesale', 'outlet-shop']


class TestByProductGroup:
    """测试按SPU聚合"""

    def test_line_item_revenue(self, aggregator, make_order):
        orders = [
            make_order(1, total=150.0, items=[
                ('MAT-1', 'Yoga Mat - Black', 1, 40.0),
                ('MAT-2', 'Yoga Mat - Blue', 1, 40.0),
                ('BTL', 'Water Bottle, 750ml', 2, 70.0),
            ]),
        ]

        rows = aggregator.by_product_group(orders)

        assert [row['product_group'] for row in rows] == ['Yoga Mat', 'Water Bottle']
        assert rows[0]['revenue'] == 80.0
        assert rows[0]['orders'] == 1
        assert rows[0]['quantity'] == 2

    def test_special_group_multiplier_follows_dominant_channel(self, aggregator, make_order):
        retail_heavy = [
            make_order(1, site_name='store-us', items=[('SB', 'Surprise Box', 5, 100.0)]),
            make_order(2, site_name='store-wholesale', items=[('SB', 'Surprise Box', 1, 20.0)]),
        ]
        row = aggregator.by_product_group(retail_heavy)[0]
        assert row['is_special_group'] is True
        assert row['retail_quantity'] == 30
        assert row['wholesale_quantity'] == 10
        assert row['multiplier'] == 6

        tie = [
            make_order(1, site_name='store-us', items=[('SB', 'Surprise Box', 1, 20.0)]),
            make_order(2, site_name='store-wholesale', items=[('SB', 'Surprise Box', 1, 20.0)]),
        ]
        # 原始销量相同时取零售
        assert aggregator.by_product_group(tie)[0]['multiplier'] == 6

        wholesale_heavy = [
            make_order(1, site_name='store-us', items=[('SB', 'Surprise Box', 1, 20.0)]),
            make_order(2, site_name='store-wholesale', items=[('SB', 'Surprise Box', 2, 40.0)]),
        ]
        assert aggregator.by_product_group(wholesale_heavy)[0]['multiplier'] == 10

    def test_dominant_channel_uses_raw_quantity(self, aggregator, make_order):
        orders = [
            make_order(1, site_name='store-us', items=[('MAT', 'Yoga Mat - Black', 5, 100.0)]),
            make_order(2, site_name='store-wholesale', items=[('MAT', 'Yoga Mat - Blue', 1, 20.0)]),
        ]

        row = aggregator.by_product_group(orders)[0]

        # 换算后批发占优（10 > 5），原始销量零售占优（5 > 1）
        assert row['retail_quantity'] == 5
        assert row['wholesale_quantity'] == 10
        assert row['multiplier'] == 1


class TestTrends:
    """测试按日与按周聚合"""

    def test_by_day_sorted_with_channel_split(self, aggregator, make_order):
        orders = [
            make_order(1, created='2025-03-06T08:00:00', total=20.0),
            make_order(2, site_name='store-wholesale', created='2025-03-05T23:59:59', total=50.0),
            make_order(3, created='2025-03-05T00:00:00', total=30.0),
            make_order(3, created='2025-03-05T00:00:00', total=30.0),
        ]

        rows = aggregator.by_day(orders)

        assert [row['date'] for row in rows] == ['2025-03-05', '2025-03-06']
        first = rows[0]
        assert first['orders'] == 2
        assert first['revenue'] == 80.0
        assert first['retail_orders'] == 1
        assert first['retail_revenue'] == 30.0
        assert first['wholesale_orders'] == 1
        assert first['wholesale_quantity'] == 20
        assert first['retail_quantity'] == 4

    def test_by_week_keys_and_labels(self, aggregator, make_order):
        orders = [
            make_order(1, created='2024-12-31T12:00:00'),
            make_order(2, created='2025-01-08T12:00:00'),
            make_order(2, created='2025-01-08T12:00:00'),
        ]

        rows = aggregator.by_week(orders)

        assert [row['week_key'] for row in rows] == ['2025-W01', '2025-W02']
        assert rows[0]['start_date'] == '2024-12-30'
        assert rows[0]['end_date'] == '2025-01-05'
        assert rows[0]['week_label'] == '12月第5周'
        assert rows[1]['week_label'] == '1月第1周'
        assert rows[1]['orders'] == 1
        assert rows[1]['quantity'] == 4

    def test_aggregate_weeks_only_when_requested(self, aggregator, make_order):
        orders = [make_order(1)]
        assert aggregator.aggregate(orders).by_week is None
        assert len(aggregator.aggregate(orders, include_weeks=True).by_week) == 1


def test_summary_average():
    assert Summary(total_orders=4, total_revenue=100.0).avg_order_value == 25.0
