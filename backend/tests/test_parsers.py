import io
import json
import pytest
from openpyxl import Workbook
from storefront.services.errors import ParseError
from storefront.services.parsers import XLSX_COLUMNS, get_parser, parse_csv, parse_json, parse_upload, parse_xlsx


def test_csv_rows_use_snake_case_keys():
    content = (
        'articleId,itemName,price,quantity,isDisplayed\n'
        'AB-100,Phone,199.99,3,true\n'
        '\n'
        'AB-101,Case,,0,no\n'
    ).encode('utf-8')
    rows = parse_csv(content)
    assert len(rows) == 2
    assert rows[0] == {'article_id': 'AB-100', 'item_name': 'Phone', 'price': 199.99, 'quantity': 3.0, 'is_displayed': True}
    assert rows[1]['price'] is None
    assert rows[1]['is_displayed'] is False


def test_json_accepts_object_or_list():
    single = parse_json(json.dumps({'articleId': 12345, 'price': '10.5'}).encode())
    assert single == [{'article_id': '12345', 'price': 10.5}]
    many = parse_json(json.dumps([{'article_id': 'X1'}, {'article_id': 'X2'}]).encode())
    assert [r['article_id'] for r in many] == ['X1', 'X2']


def test_json_rejects_garbage():
    with pytest.raises(ParseError):
        parse_json(b'{not json')
    with pytest.raises(ParseError):
        parse_json(b'[1, 2]')


def _workbook_bytes(rows):
    wb = Workbook()
    ws = wb.active
    ws.append(['header %d' % i for i in range(len(XLSX_COLUMNS))])
    for r in rows:
        ws.append(r)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def test_xlsx_columns_are_positional():
    content = _workbook_bytes([
        [1001, 'Laptops', 'Gaming', 'Blade', 'Fast', 'warehouse-1', 2999, 4, 2799, '2030-01-01',
         24, 5, 10, 7, 'TRUE', 'Razer', 'HOT_DEALS'],
    ])
    rows = parse_xlsx(content)
    assert len(rows) == 1
    row = rows[0]
    assert row['article_id'] == '1001'
    assert row['category_name'] == 'Laptops'
    assert row['warehouse_name'] == 'warehouse-1'
    assert row['price'] == 2999
    assert row['is_displayed'] is True
    assert row['badge'] == 'HOT_DEALS'
    assert row['promo_end_date'].startswith('2030-01-01')


def test_unsupported_type():
    with pytest.raises(ParseError) as exc:
        get_parser('pdf')
    assert exc.value.message == 'Unsupported file type: pdf'
    with pytest.raises(ParseError):
        parse_upload('notes', b'abc')


def test_parse_upload_dispatches_on_extension():
    rows = parse_upload('prices.CSV', b'article_id,price\nZZ-1,5\n')
    assert rows == [{'article_id': 'ZZ-1', 'price': 5.0}]
