import argparse
import logging
from pathlib import Path

import requests

from config import HTTP_TIMEOUT_SECONDS, LOG_FILE, LOG_FORMAT, USER_AGENT, WNC_CASE
from document import SoupReader
from extract import normalize_key, read_hidden_inputs, read_positional_rows, resolve_url
from output import write_result

logger = logging.getLogger(__name__)

DISCLAIMER_FORM = 'form[action^="/Disclaimer/Accept"]'

PLOT_FIELDS = (
    'plot_number',
    'plot_address',
    'plot_status',
    'commencement_date',
    'completion_date',
)

SITE_HISTORY_FIELDS = (
    'application_number',
    'received_date',
    'validated_date',
    'application_type',
    'location',
    'proposal',
)


class DisclaimerError(RuntimeError):
    """The disclaimer page could not be accepted."""


def new_session():
    session = requests.Session()
    session.headers.update({'User-Agent': USER_AGENT})
    return session


def scrape_main_details(doc):
    """Main Details cells hold a bare label followed by a <span> value."""
    data = {}
    for row in doc.query_all('#Main-Details table.summaryTbl tr'):
        for cell in doc.query_all('td.halfwidth, td.fullwidth', row):
            key_text = doc.leading_text(cell)
            value_text = ''.join(doc.raw_text(span) for span in doc.query_all('span', cell)).strip()
            if key_text and value_text:
                data[normalize_key(key_text)] = value_text
    return data


def scrape_plots(doc):
    return read_positional_rows(doc, '#Plots table.summaryTbl', PLOT_FIELDS, skip=1)


def scrape_site_history(doc):
    # title row + header row
    return read_positional_rows(doc, '#Site-history table.tblResults', SITE_HISTORY_FIELDS, skip=2)


def parse_application_page(doc):
    title = doc.text_of('h1')
    return {
        'url': doc.url,
        'title': title or '',
        'main_details': scrape_main_details(doc),
        'plots': scrape_plots(doc),
        'site_history': scrape_site_history(doc),
    }


def accept_disclaimer(session, case=WNC_CASE):
    """Resubmit the disclaimer form so the session gets its access cookie."""
    res = session.get(case.disclaimer_url, timeout=HTTP_TIMEOUT_SECONDS)
    res.raise_for_status()
    doc = SoupReader(res.text, case.disclaimer_url)

    form = doc.query_one(DISCLAIMER_FORM)
    if form is None:
        raise DisclaimerError("Disclaimer form not found")
    action = doc.attribute(form, 'action')
    if not action:
        raise DisclaimerError("No form action found")

    form_data = read_hidden_inputs(doc, form)
    accept_url = resolve_url(case.base_url + '/', action)
    logger.debug(f"Posting {len(form_data)} hidden fields to {accept_url}")
    res = session.post(accept_url, data=form_data, timeout=HTTP_TIMEOUT_SECONDS)
    res.raise_for_status()


def fetch_application_page(session, case=WNC_CASE):
    res = session.get(case.application_url, timeout=HTTP_TIMEOUT_SECONDS)
    res.raise_for_status()
    return parse_application_page(SoupReader(res.text, case.application_url))


def scrape_application(session, case=WNC_CASE):
    logger.info("Accepting disclaimer...")
    accept_disclaimer(session, case)
    logger.info("Fetching application page...")
    return fetch_application_page(session, case)


def load_saved_page(path, case=WNC_CASE):
    """Parse a previously saved application page so runs work offline."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Saved page not found: {path}")
    logger.warning(f"Parsing saved page {path} instead of fetching {case.application_url}")
    return parse_application_page(SoupReader(path.read_text(encoding='utf-8'), case.application_url))


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Scrape a West Northamptonshire building control application.")
    parser.add_argument('--output', default=WNC_CASE.output_path,
                        help='Where to write the JSON result (default: result_task2.json).')
    parser.add_argument('--html', type=Path, default=None,
                        help='Optional saved application page to parse instead of fetching.')
    return parser.parse_args(argv)


def main(argv=None):
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT,
                        handlers=[logging.FileHandler(LOG_FILE), logging.StreamHandler()])
    args = parse_args(argv)

    try:
        if args.html:
            data = load_saved_page(args.html)
        else:
            with new_session() as session:
                data = scrape_application(session, WNC_CASE)
        write_result(data, args.output)
    except Exception as exc:  # pylint: disable=broad-except
        logger.error(f"Error: {exc}")


if __name__ == '__main__':
    main()
