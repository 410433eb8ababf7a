from storefront.services.bulk_validation import validate_bulk_items


def _row(**overrides):
    row = {
        'article_id': 'VAL-001',
        'category_name': 'Laptops',
        'subcategory_name': 'Gaming',
        'item_name': 'Laptop',
        'description': 'desc',
        'warehouse_name': 'warehouse-1',
        'price': '100',
        'quantity': '2',
    }
    row.update(overrides)
    return row


def test_valid_row_is_coerced():
    result = validate_bulk_items([_row()])
    assert result.is_valid
    assert result.valid_items[0]['price'] == 100.0
    assert result.valid_items[0]['quantity'] == 2


def test_required_fields_reported_per_row():
    result = validate_bulk_items([_row(), _row(article_id='VAL-002', item_name='', price=None)])
    assert len(result.valid_items) == 1
    assert result.invalid_items[0]['row'] == 2
    assert 'Row 2: item_name is required' in result.errors
    assert 'Row 2: price is required' in result.errors


def test_numeric_and_range_checks():
    result = validate_bulk_items([
        _row(price='abc'),
        _row(article_id='VAL-002', quantity=-1),
        _row(article_id='VAL-003', warranty_length=200, discount=150, popularity=11),
    ])
    assert 'Row 1: price must be a number' in result.errors
    assert 'Row 2: quantity must be greater than or equal to 0' in result.errors
    assert 'Row 3: warranty_length must be between 0 and 120 months' in result.errors
    assert 'Row 3: discount must be between 0 and 100 percent' in result.errors
    assert 'Row 3: popularity must be between 0 and 10' in result.errors


def test_badge_date_and_article_id_checks():
    result = validate_bulk_items([
        _row(badge='SUPER'),
        _row(article_id='AB'),
        _row(article_id='VAL-009', promo_end_date='not-a-date'),
        _row(article_id='VAL-009'),
    ])
    assert any(e.startswith('Row 1: badge must be one of:') for e in result.errors)
    assert 'Row 2: article_id must be between 3 and 50 characters' in result.errors
    assert 'Row 3: promo_end_date must be a valid date' in result.errors
    assert "Row 4: Duplicate article_id 'VAL-009' found in batch" in result.errors
