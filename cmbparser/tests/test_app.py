"""
Tests for the command line interface.
"""
import json
import pytest
from typer.testing import CliRunner

from .. import app as cli
from ..core import runner as core_runner
from ..core.detectors import DEFAULT_HEADERS
from .test_cmb_parser import MOCK_STATEMENT

runner = CliRunner()


@pytest.fixture
def statement_pdf(tmp_path, monkeypatch):
    monkeypatch.setattr(core_runner, 'load_fragments', lambda path: MOCK_STATEMENT)
    path = tmp_path / 'statement.pdf'
    path.write_bytes(b'%PDF-1.4\n')
    return path


class TestParseCommand:

    def test_json_output_file(self, statement_pdf, tmp_path):
        out = tmp_path / 'out.json'
        result = runner.invoke(cli.app, ['parse', str(statement_pdf), '--format', 'json',
                                         '--out', str(out), '--year', '2025', '--month', '11'])

        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text(encoding='utf-8'))
        assert len(data['transactions']) == 3
        assert data['transactions'][0]['transDate'] == '2025-11-02'

    def test_csv_output_file(self, statement_pdf, tmp_path):
        out = tmp_path / 'out.csv'
        result = runner.invoke(cli.app, ['parse', str(statement_pdf), '--format', 'csv', '--out', str(out),
                                         '--filter', '美团'])

        assert result.exit_code == 0, result.output
        lines = out.read_text(encoding='utf-8-sig').splitlines()
        assert lines[0] == ','.join(DEFAULT_HEADERS)
        assert len(lines) == 2
        assert '美团支付' in lines[1]

    def test_table_output(self, statement_pdf):
        result = runner.invoke(cli.app, ['parse', str(statement_pdf)])

        assert result.exit_code == 0, result.output
        assert 'Transactions (3)' in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(cli.app, ['parse', str(tmp_path / 'missing.pdf')])
        assert result.exit_code == 1

    def test_unknown_sort(self, statement_pdf):
        result = runner.invoke(cli.app, ['parse', str(statement_pdf), '--sort', 'card'])
        assert result.exit_code == 1

    def test_invalid_month(self, statement_pdf):
        result = runner.invoke(cli.app, ['parse', str(statement_pdf), '--month', '13'])
        assert result.exit_code == 1

    def test_no_transactions(self, statement_pdf, monkeypatch):
        monkeypatch.setattr(core_runner, 'load_fragments', lambda path: ['Noise data'])
        result = runner.invoke(cli.app, ['parse', str(statement_pdf)])

        assert result.exit_code == 1
        assert 'No transactions found' in result.output


class TestOtherCommands:

    def test_validate(self, statement_pdf, tmp_path):
        out = tmp_path / 'out.json'
        runner.invoke(cli.app, ['parse', str(statement_pdf), '-f', 'json', '-o', str(out)])

        result = runner.invoke(cli.app, ['validate', str(out)])
        assert result.exit_code == 0, result.output
        assert 'JSON is valid' in result.output

    def test_validate_rejects_bad_json(self, tmp_path):
        bad = tmp_path / 'bad.json'
        bad.write_text('{"headers": ["a"], "transactions": []}', encoding='utf-8')

        result = runner.invoke(cli.app, ['validate', str(bad)])
        assert result.exit_code == 1

    def test_fragments_find(self, monkeypatch, tmp_path):
        monkeypatch.setattr(cli, 'load_fragments',
                            lambda path: ['11/06', 'Automatic Repayment', '200.00', '5678'])
        result = runner.invoke(cli.app, ['fragments', str(tmp_path / 'x.pdf'), '--find', 'Repayment'])

        assert result.exit_code == 0, result.output
        assert '5678' in result.output

    def test_fragments_find_missing(self, monkeypatch, tmp_path):
        monkeypatch.setattr(cli, 'load_fragments', lambda path: ['11/06'])
        result = runner.invoke(cli.app, ['fragments', str(tmp_path / 'x.pdf'), '--find', 'Repayment'])
        assert result.exit_code == 1

    def test_detect(self, monkeypatch, tmp_path):
        monkeypatch.setattr(cli, 'detect_template', lambda path: 'cmb_credit_v1')
        result = runner.invoke(cli.app, ['detect', str(tmp_path / 'x.pdf')])

        assert result.exit_code == 0
        assert 'cmb_credit_v1' in result.output

    def test_detect_no_match(self, monkeypatch, tmp_path):
        monkeypatch.setattr(cli, 'detect_template', lambda path: None)
        result = runner.invoke(cli.app, ['detect', str(tmp_path / 'x.pdf')])
        assert result.exit_code == 1
