from datetime import datetime, timezone

import pytest

from salesdash.data.models import Order, LineItem
from salesdash.reporting.classifier import Classifier, ClassificationConfig


@pytest.fixture
def classifier():
    """默认分类表"""
    return Classifier(ClassificationConfig())


@pytest.fixture
def make_order():
    """订单工厂"""

    def _make(order_id, site_name='store-us', total=100.0, created='2025-03-05T10:00:00',
              site_id=None, shipping_country='US', billing_country=None, items=None):
        return Order(
            id=str(order_id),
            site_id=site_id or site_name,
            site_name=site_name,
            created_at=datetime.fromisoformat(created).replace(tzinfo=timezone.utc),
            total=total,
            shipping_country=shipping_country,
            billing_country=billing_country,
            items=[LineItem(sku=sku, name=name, quantity=qty, total=line_total)
                   for sku, name, qty, line_total in (items if items is not None else [('MAT-1', 'Yoga Mat - Black', 2, total)])]
        )

    return _make
