import json
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from config import BuildingControlCase
from document import SoupReader
import wnc_scraper
from wnc_scraper import (
    DisclaimerError,
    accept_disclaimer,
    parse_application_page,
    scrape_application,
    scrape_main_details,
    scrape_plots,
    scrape_site_history,
)

CASE = BuildingControlCase(
    name="Test Council",
    base_url="https://wnc.planning-register.co.uk",
    reference="FP/2025/0159",
)

DISCLAIMER_PAGE = """
<html><body>
  <form action="/Search/Simple" method="get"><input type="hidden" name="q" value="x"></form>
  <form action="/Disclaimer/Accept?id=1" method="post">
    <input type="hidden" name="token" value="abc">
    <input type="submit" value="Accept">
  </form>
</body></html>
"""

APPLICATION_PAGE = """
<html><body>
<h1> Building Control Application FP/2025/0159 </h1>
<div id="Main-Details">
  <table class="summaryTbl">
    <tr>
      <td class="halfwidth">Reference Number<br><span>FP/2025/0159</span></td>
      <td class="halfwidth">Status<span>Live</span></td>
    </tr>
    <tr><td class="fullwidth">Site Address<span>1 High Street, Northampton</span></td></tr>
    <tr><td class="halfwidth">Decision<span></span></td></tr>
  </table>
</div>
<div id="Plots">
  <table class="summaryTbl">
    <tr><th>Plot</th><th>Address</th><th>Status</th><th>Commenced</th><th>Completed</th></tr>
    <tr><td>1</td><td>1 High Street</td><td>Complete</td><td>01/02/2025</td><td>03/04/2025</td></tr>
    <tr><td>2</td><td>2 High Street</td><td>Started</td></tr>
  </table>
</div>
<div id="Site-history">
  <table class="tblResults">
    <tr><th colspan="6">Site history</th></tr>
    <tr><th>Application</th><th>Received</th><th>Validated</th><th>Type</th><th>Location</th><th>Proposal</th></tr>
    <tr><td>FP/2020/0001</td><td>01/01/2020</td><td>02/01/2020</td><td>Full Plans</td><td>1 High Street</td><td>Extension</td></tr>
    <tr></tr>
    <tr><td>BN/2021/0002</td><td>05/05/2021</td><td>06/05/2021</td><td>Building Notice</td><td>1 High Street</td><td>Loft</td></tr>
  </table>
</div>
</body></html>
"""


class FakeResponse:
    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise RuntimeError(f"HTTP {self.status_code}")


class FakeSession:
    """Stands in for requests.Session, recording every call in order."""

    def __init__(self, pages):
        self.pages = pages
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append(('GET', url, None))
        return FakeResponse(self.pages[url])

    def post(self, url, data=None, timeout=None):
        self.calls.append(('POST', url, data))
        return FakeResponse("")


def test_case_urls():
    assert CASE.application_url == "https://wnc.planning-register.co.uk/BuildingControl/Display/FP/2025/0159"
    assert CASE.disclaimer_url == (
        "https://wnc.planning-register.co.uk/Disclaimer?returnUrl=%2FBuildingControl%2FDisplay%2FFP%2F2025%2F0159"
    )


def test_disclaimer_is_posted_before_application_is_fetched():
    session = FakeSession({
        CASE.disclaimer_url: DISCLAIMER_PAGE,
        CASE.application_url: APPLICATION_PAGE,
    })

    data = scrape_application(session, CASE)

    assert session.calls == [
        ('GET', CASE.disclaimer_url, None),
        ('POST', 'https://wnc.planning-register.co.uk/Disclaimer/Accept?id=1', {'token': 'abc'}),
        ('GET', CASE.application_url, None),
    ]
    assert data['url'] == CASE.application_url
    assert data['title'] == 'Building Control Application FP/2025/0159'


def test_missing_disclaimer_form_is_fatal():
    session = FakeSession({CASE.disclaimer_url: "<html><body><p>Down for maintenance</p></body></html>"})

    with pytest.raises(DisclaimerError):
        accept_disclaimer(session, CASE)

    assert [call[0] for call in session.calls] == ['GET']


def test_scrape_main_details_uses_label_and_span():
    details = scrape_main_details(SoupReader(APPLICATION_PAGE))
    assert details == {
        'reference_number': 'FP/2025/0159',
        'status': 'Live',
        'site_address': '1 High Street, Northampton',
    }


def test_scrape_plots_skips_header_row():
    plots = scrape_plots(SoupReader(APPLICATION_PAGE))
    assert len(plots) == 2
    assert plots[0] == {
        'plot_number': '1',
        'plot_address': '1 High Street',
        'plot_status': 'Complete',
        'commencement_date': '01/02/2025',
        'completion_date': '03/04/2025',
    }
    assert plots[1]['completion_date'] == ''


def test_scrape_site_history_skips_title_and_header_rows():
    history = scrape_site_history(SoupReader(APPLICATION_PAGE))
    assert [row['application_number'] for row in history] == ['FP/2020/0001', 'BN/2021/0002']
    assert history[1]['proposal'] == 'Loft'


def test_parse_application_page_without_sections():
    data = parse_application_page(SoupReader("<html><body></body></html>", CASE.application_url))
    assert data == {
        'url': CASE.application_url,
        'title': '',
        'main_details': {},
        'plots': [],
        'site_history': [],
    }


def test_main_parses_saved_page(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    saved = tmp_path / "application.html"
    saved.write_text(APPLICATION_PAGE, encoding='utf-8')
    output = tmp_path / "out.json"

    wnc_scraper.main(['--html', str(saved), '--output', str(output)])

    data = json.loads(output.read_text(encoding='utf-8'))
    assert data['main_details']['status'] == 'Live'
    assert len(data['site_history']) == 2
    assert '"plot_number": "1"' in capsys.readouterr().out


def test_main_logs_failure_without_writing(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    output = tmp_path / "out.json"

    wnc_scraper.main(['--html', str(tmp_path / "missing.html"), '--output', str(output)])

    assert not output.exists()


def test_scrape_main_details_joins_spans_before_trimming():
    html = """
    <div id="Main-Details"><table class="summaryTbl">
      <tr><td class="fullwidth">Applicant<span>Foo </span><span>Bar</span></td></tr>
    </table></div>
    """
    assert scrape_main_details(SoupReader(html)) == {'applicant': 'Foo Bar'}
