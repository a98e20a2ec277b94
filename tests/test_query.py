import pytest

from catalog_service.models import Item
from catalog_service.query import ItemQuery, run_query


@pytest.fixture
def items():
    return [
        Item(id="1", title="Widget", image="widget.png", price=2.0, stock=5),
        Item(id="2", title="gadget", image="gadget.jpg", price=7.5, stock=0),
        Item(id="3", title="Gizmo", image="blue-widget.jpg", price=10.0, stock=3),
        Item(id="4", title="Doohickey", image="d.png", price=5.0, stock=12),
        Item(id="5", title="Anvil", image="anvil.png", price=12.0, stock=-0),
    ]


def ids(result):
    return [item.id for item in result.page]


def test_default_sort_is_title_case_insensitive(items):
    result = run_query(items, ItemQuery())
    assert ids(result) == ["5", "4", "2", "3", "1"]
    assert result.total == 5


def test_text_filter_matches_title_or_image(items):
    result = run_query(items, ItemQuery(text="widget"))
    assert sorted(ids(result)) == ["1", "3"]


def test_in_stock_filter(items):
    assert all(i.stock > 0 for i in run_query(items, ItemQuery(in_stock=True)).page)
    assert sorted(ids(run_query(items, ItemQuery(in_stock=False)))) == ["2", "5"]


def test_price_bounds_are_inclusive(items):
    result = run_query(items, ItemQuery(in_stock=True, min_price=5, max_price=10))
    assert sorted(ids(result)) == ["3", "4"]
    assert all(5 <= i.price <= 10 and i.stock > 0 for i in result.page)


def test_descending_sort(items):
    result = run_query(items, ItemQuery(sort="-price"))
    assert ids(result) == ["5", "3", "2", "4", "1"]


def test_unknown_sort_key_keeps_source_order(items):
    assert ids(run_query(items, ItemQuery(sort="color"))) == ["1", "2", "3", "4", "5"]
    assert ids(run_query(items, ItemQuery(sort="-color"))) == ["1", "2", "3", "4", "5"]


def test_pagination_reports_filtered_total(items):
    result = run_query(items, ItemQuery(sort="id", limit=2, offset=1))
    assert ids(result) == ["2", "3"]
    assert result.total == 5
    assert result.limit == 2
    assert result.offset == 1


def test_limit_and_offset_are_clamped(items):
    assert run_query(items, ItemQuery(limit=0)).limit == 1
    assert run_query(items, ItemQuery(limit=1000)).limit == 200
    result = run_query(items, ItemQuery(offset=-4, sort="id"))
    assert result.offset == 0
    assert ids(result)[0] == "1"


def test_offset_past_end_gives_empty_page(items):
    result = run_query(items, ItemQuery(offset=50))
    assert result.page == []
    assert result.total == 5


def test_from_params_coerces_like_query_strings():
    query = ItemQuery.from_params(
        q="  WiDGet ", in_stock="true", min_price="abc", max_price="", limit="x", offset="3", sort="",
    )
    assert query.text == "widget"
    assert query.in_stock is True
    assert query.min_price == 0.0
    assert query.max_price is None
    assert query.limit == 50
    assert query.offset == 3
    assert query.sort == "title"


def test_from_params_defaults():
    query = ItemQuery.from_params()
    assert query == ItemQuery()
