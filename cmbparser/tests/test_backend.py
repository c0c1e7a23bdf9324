"""
Tests for the FastAPI backend.
"""
import pytest
from urllib.parse import quote
from fastapi.testclient import TestClient

from backend.main import app
from ..core import detectors, runner
from ..core.detectors import DEFAULT_HEADERS
from .test_cmb_parser import MOCK_STATEMENT

PDF_UPLOAD = {'file': ('statement.pdf', b'%PDF-1.4 fake', 'application/pdf')}
PERIOD = {'year': 2025, 'month': 11}


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def statement(monkeypatch):
    monkeypatch.setattr(runner, 'load_fragments', lambda path: MOCK_STATEMENT)


class TestParseEndpoint:

    def test_health(self, client):
        response = client.get('/')
        assert response.status_code == 200
        assert response.json()['status'] == 'healthy'

    def test_parse(self, client, statement):
        response = client.post('/parse', files=PDF_UPLOAD, params=PERIOD)

        assert response.status_code == 200
        data = response.json()
        assert data['success'] is True
        assert data['headers'] == DEFAULT_HEADERS
        assert len(data['transactions']) == 3
        first = data['transactions'][0]
        assert first['originalIndex'] == 1
        assert first['transDate'] == '2025-11-02'
        assert first['cardLastFour'] == '5445'
        assert first['amountRMB'] == 38.2
        assert first['originalAmount'] == 38.2
        assert data['summary']['transactions_count'] == 3
        assert data['summary']['reference_period'] == PERIOD

    def test_parse_with_filter_and_sort(self, client, statement):
        response = client.post('/parse', files=PDF_UPLOAD,
                               params={**PERIOD, 'filter': '支付宝', 'sort': 'amount_rmb', 'desc': 'true'})

        data = response.json()
        assert [t['originalIndex'] for t in data['transactions']] == [1, 3]
        assert data['summary']['shown_count'] == 2
        assert data['summary']['transactions_count'] == 3

    def test_bad_sort_field(self, client, statement):
        response = client.post('/parse', files=PDF_UPLOAD, params={'sort': 'nope'})
        assert response.status_code == 400

    def test_bad_period(self, client, statement):
        response = client.post('/parse', files=PDF_UPLOAD, params={'year': 2025, 'month': 13})
        assert response.status_code == 400

    def test_not_a_pdf(self, client):
        response = client.post('/parse', files={'file': ('notes.txt', b'hello', 'text/plain')})
        assert response.status_code == 400

    def test_no_text(self, client, monkeypatch):
        monkeypatch.setattr(runner, 'load_fragments', lambda path: [])
        response = client.post('/parse', files=PDF_UPLOAD)

        assert response.status_code == 422
        assert 'No text found' in response.json()['detail']

    def test_no_transactions(self, client, monkeypatch):
        monkeypatch.setattr(runner, 'load_fragments', lambda path: ['Noise data'])
        response = client.post('/parse', files=PDF_UPLOAD)

        assert response.status_code == 422
        assert 'No transactions found' in response.json()['detail']

    def test_unexpected_failure(self, client, monkeypatch):
        def explode(path):
            raise RuntimeError("corrupt xref table")
        monkeypatch.setattr(runner, 'load_fragments', explode)
        response = client.post('/parse', files=PDF_UPLOAD)

        assert response.status_code == 500
        assert 'corrupt xref table' in response.json()['detail']


class TestCsvEndpoint:

    def test_csv_download(self, client, statement):
        response = client.post('/parse/csv', files=PDF_UPLOAD, params=PERIOD)

        assert response.status_code == 200
        assert response.headers['content-type'].startswith('text/csv')
        assert 'statement.csv' in response.headers['content-disposition']
        assert response.content.startswith(b'\xef\xbb\xbf')
        lines = response.content.decode('utf-8-sig').splitlines()
        assert lines[0] == ','.join(DEFAULT_HEADERS)
        assert len(lines) == 4

    def test_csv_download_chinese_filename(self, client, statement):
        upload = {'file': ('招商银行账单.pdf', b'%PDF-1.4 fake', 'application/pdf')}
        response = client.post('/parse/csv', files=upload, params=PERIOD)

        assert response.status_code == 200
        disposition = response.headers['content-disposition']
        assert 'filename="transactions.csv"' in disposition
        assert "filename*=UTF-8''" + quote('招商银行账单.csv') in disposition
        assert response.content.startswith(b'\xef\xbb\xbf')
        assert len(response.content.decode('utf-8-sig').splitlines()) == 4


class TestTemplateEndpoints:

    def test_detect_template(self, client, monkeypatch):
        monkeypatch.setattr(detectors, 'load_fragments', lambda path: ['招商银行信用卡对账单', '交易摘要', '卡号末四位'])
        response = client.post('/detect-template', files=PDF_UPLOAD)

        assert response.status_code == 200
        assert response.json()['template'] == 'cmb_credit_v1'

    def test_detect_template_no_match(self, client, monkeypatch):
        monkeypatch.setattr(detectors, 'load_fragments', lambda path: ['Chase'])
        response = client.post('/detect-template', files=PDF_UPLOAD)
        assert response.status_code == 400

    def test_list_templates(self, client):
        response = client.get('/templates')

        assert response.status_code == 200
        ids = [t['id'] for t in response.json()['templates']]
        assert 'cmb_credit_v1' in ids
