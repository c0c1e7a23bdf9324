"""
Tests for CSV/JSON export and the table view helpers.
"""
import json
import pytest
from decimal import Decimal

from ..models.schema import ParsedResult, ReferencePeriod
from ..core.detectors import DEFAULT_HEADERS, HEADER_KEYWORDS
from ..core.export import export_csv, export_json, render_csv, to_rows
from ..core.runner import parse_fragments
from ..core.tables import filter_transactions, format_amount, render_table, sort_transactions
from .test_cmb_parser import MOCK_STATEMENT


@pytest.fixture
def result():
    return parse_fragments(MOCK_STATEMENT + ['11/06', 'Automatic Repayment', '200.00', '5678'],
                           ReferencePeriod(year=2025, month=11))


class TestExport:

    def test_rows_use_resolved_headers(self, result):
        rows = to_rows(result)

        assert len(rows) == 4
        assert list(rows[0].keys()) == DEFAULT_HEADERS
        assert rows[0] == {
            'Transaction Date': '2025-11-02',
            'Post Date': '2025-11-03',
            'Description': '支付宝-特约商户',
            'Amount (RMB)': '38.20',
            'Card #': '5445',
            'Original Amount': '38.20',
        }
        assert rows[3]['Original Amount'] == ''
        assert rows[3]['Transaction Date'] == ''

    def test_render_csv(self, result):
        text = render_csv(result)

        assert text.startswith('\ufeff')
        lines = text[1:].splitlines()
        assert lines[0] == 'Transaction Date,Post Date,Description,Amount (RMB),Card #,Original Amount'
        assert lines[1] == '2025-11-02,2025-11-03,支付宝-特约商户,38.20,5445,38.20'
        assert lines[3] == '2025-10-19,2025-10-20,支付宝-上海极途信息技术有限公司,-68.00,5445,-68.00'
        assert lines[4] == ',2025-11-06,Automatic Repayment,200.00,5678,'
        assert len(lines) == 5

    def test_render_csv_with_statement_headers(self):
        result = parse_fragments(list(HEADER_KEYWORDS) + MOCK_STATEMENT, ReferencePeriod(year=2025, month=11))
        header_line = render_csv(result)[1:].splitlines()[0]
        assert header_line == ','.join(HEADER_KEYWORDS)

    def test_export_csv_writes_bom(self, result, tmp_path):
        path = export_csv(result, tmp_path / 'transactions.csv')

        raw = path.read_bytes()
        assert raw.startswith(b'\xef\xbb\xbf')
        assert '支付宝-特约商户' in raw.decode('utf-8-sig')

    def test_export_json_round_trip(self, result, tmp_path):
        path = export_json(result, tmp_path / 'transactions.json')

        data = json.loads(path.read_text(encoding='utf-8'))
        assert data['headers'] == DEFAULT_HEADERS
        assert data['transactions'][0]['originalIndex'] == 1
        assert data['transactions'][0]['cardLastFour'] == '5445'
        assert data['transactions'][3]['originalAmount'] is None
        assert data['transactions'][0]['amountRMB'] == 38.2
        assert data['transactions'][3]['amountRMB'] == 200.0
        assert data['referencePeriod'] == {'year': 2025, 'month': 11}

        assert ParsedResult.model_validate_json(path.read_text(encoding='utf-8')) == result

    def test_empty_result(self):
        result = parse_fragments([], ReferencePeriod(year=2025, month=11))
        assert render_csv(result)[1:].splitlines() == [','.join(DEFAULT_HEADERS)]


class TestTableView:

    def test_filter_description(self, result):
        assert [t.original_index for t in filter_transactions(result.transactions, '美团')] == [2]

    def test_filter_case_insensitive(self, result):
        assert [t.original_index for t in filter_transactions(result.transactions, 'automatic')] == [4]

    def test_filter_amount_and_card(self, result):
        assert [t.original_index for t in filter_transactions(result.transactions, '-68')] == [3]
        assert [t.original_index for t in filter_transactions(result.transactions, '5678')] == [4]

    def test_empty_filter_keeps_all(self, result):
        assert filter_transactions(result.transactions, '') == result.transactions
        assert filter_transactions(result.transactions, None) == result.transactions

    def test_sort_by_amount(self, result):
        ordered = sort_transactions(result.transactions, 'amount_rmb')
        assert [t.original_index for t in ordered] == [3, 2, 1, 4]

        ordered = sort_transactions(result.transactions, 'amount_rmb', descending=True)
        assert [t.original_index for t in ordered] == [4, 1, 2, 3]

    def test_sort_by_date(self, result):
        ordered = sort_transactions(result.transactions, 'trans_date')
        assert [t.original_index for t in ordered] == [4, 3, 1, 2]

    def test_sort_unknown_field(self, result):
        with pytest.raises(ValueError):
            sort_transactions(result.transactions, 'card_last_four')

    def test_render_table(self, result):
        table = render_table(result)

        assert table.row_count == 4
        assert len(table.columns) == 7
        assert table.columns[1].header == 'Transaction Date'
        assert table.columns[5].header == 'Amount (RMB)'

    def test_render_empty_table(self, result):
        table = render_table(result, [])
        assert table.row_count == 1

    def test_format_amount(self):
        assert format_amount(Decimal('-1234.5')) == '-1,234.50'
        assert format_amount(None) == ''
