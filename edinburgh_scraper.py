import argparse
import logging

from playwright.sync_api import sync_playwright, TimeoutError as PWTimeout

from config import (
    EDINBURGH_CASE,
    LOG_FILE,
    LOG_FORMAT,
    MAP_FRAME_TIMEOUT_MS,
    MAP_TIMEOUT_MS,
    NAV_TIMEOUT_MS,
    USER_AGENT,
)
from document import PlaywrightReader
from extract import (
    extract_count,
    normalize_key,
    parse_date_value,
    read_hidden_inputs,
    read_key_value_table,
    read_links,
    read_related_sections,
    read_select_options,
    resolve_url,
)
from output import write_result

logger = logging.getLogger(__name__)

SUMMARY_TABLE = '#simpleDetailsTable'
DETAILS_TABLE = '#buildingStandardsDetails'
PLOT_SELECT = '#plotDesc'
PLOT_SUBMIT = '#bsPlotsDesc input[type="submit"]'
PLOT_TABLE = '.tabcontainer table[summary*="Building Standards Application Plots"]'
MAP_FRAME_NAME = 'mapiframe'


class PlaywrightNavigator:
    """Loads portal pages in a single Playwright page, one at a time."""

    def __init__(self, page):
        self.page = page

    def goto(self, url, wait_until='networkidle', timeout=NAV_TIMEOUT_MS):
        self.page.goto(url, wait_until=wait_until, timeout=timeout)
        return PlaywrightReader(self.page)

    def submit_option(self, select_selector, value, submit_selector, wait_until='networkidle'):
        """Pick a dropdown option and submit its form, waiting for the reload."""
        self.page.select_option(select_selector, value)
        with self.page.expect_navigation(wait_until=wait_until, timeout=NAV_TIMEOUT_MS):
            self.page.click(submit_selector)
        return PlaywrightReader(self.page)

    def frame_url(self, name, timeout):
        frame = self.page.frame(name=name)
        if frame is None:
            return None
        try:
            frame.wait_for_load_state('domcontentloaded', timeout=timeout)
        except PWTimeout:
            logger.warning(f"Frame '{name}' did not finish loading within {timeout}ms")
        except Exception as exc:
            logger.warning(f"Frame '{name}' went away while loading: {exc}")
        url = frame.url
        if not url or url == 'about:blank':
            return None
        return url


def scrape_summary(nav, case):
    url = case.tab_url('summary')
    doc = nav.goto(url)

    crumb = doc.query_one('.addressCrumb')
    header = {
        'caseNumber': (doc.text_of('.caseNumber', crumb) or None) if crumb is not None else None,
        'description': (doc.text_of('.description', crumb) or None) if crumb is not None else None,
        'address': (doc.text_of('.address', crumb) or None) if crumb is not None else None,
    }
    if crumb is None:
        logger.warning("No .addressCrumb header on summary tab")

    summary = read_key_value_table(doc, SUMMARY_TABLE)

    cases_raw = doc.text_of('p.associatedcase')
    properties_raw = doc.text_of('p.associatedproperty')
    property_url = None
    if properties_raw:
        property_url = resolve_url(url, doc.attribute_of('p.associatedproperty a', 'href'))

    return {
        'header': header,
        'summary': summary,
        'cases': {
            'raw_text': cases_raw,
            'count': extract_count(cases_raw),
        },
        'properties': {
            'raw_text': properties_raw,
            'count': extract_count(properties_raw),
            'url': property_url,
        },
    }


def scrape_further_information(nav, case):
    doc = nav.goto(case.tab_url('details'))
    return read_key_value_table(doc, DETAILS_TABLE)


def read_plot(doc, option):
    return {
        'label': option['label'],
        'description': doc.text_of('.tabcontainer p b'),
        'details': read_key_value_table(doc, PLOT_TABLE),
    }


def scrape_plots(nav, case):
    """Visit every plot in the dropdown; the empty "All" option is not a plot."""
    doc = nav.goto(case.tab_url('plots'))
    options = read_select_options(doc, PLOT_SELECT)
    current = next((opt['value'] for opt in options if opt['selected']), None)

    plots = {}
    for option in options:
        if not option['value']:
            continue
        if option['value'] != current:
            logger.info(f"Selecting plot {option['value']}")
            doc = nav.submit_option(PLOT_SELECT, option['value'], PLOT_SUBMIT)
            current = option['value']
        plots[option['value']] = read_plot(doc, option)

    logger.info(f"Scraped {len(plots)} plots")
    return {
        'options': options,
        'plots': plots,
    }


def scrape_important_dates(nav, case):
    doc = nav.goto(case.tab_url('dates'))
    return read_key_value_table(doc, SUMMARY_TABLE)


def scrape_certificates(nav, case):
    """Walk every certificate subtab (design, construction, energy, completion)."""
    doc = nav.goto(case.tab_url('designCertificate'))
    subtabs = read_links(doc, '.subtabs a', resolve=False)

    certificates = {}
    for link in subtabs:
        if not link['href']:
            continue
        sub_url = resolve_url(case.case_url, link['href'])
        doc = nav.goto(sub_url)
        key = normalize_key(link['text'])

        table = None
        if doc.query_one('.tabcontainer table') is not None:
            table = read_key_value_table(doc, '.tabcontainer table')

        # "There are no certificates ..." style pages only have this text
        message = doc.text_of('.tabcontainer')

        applies_to_plots = None
        if key == case.plot_links_subtab:
            applies_to_plots = read_links(doc, '.tabcontainer a')

        certificates[key] = {
            'title': link['text'],
            'url': sub_url,
            'table': table,
            'message': message,
            'applies_to_plots': applies_to_plots,
        }

    if subtabs and case.plot_links_subtab not in certificates:
        logger.warning(f"No certificate subtab matched '{case.plot_links_subtab}'; plot links not collected")
    return certificates


def scrape_related_items(nav, case):
    url = case.tab_url('relatedCases')
    doc = nav.goto(url)
    return {
        'url': url,
        'sections': read_related_sections(doc, '.tabcontainer'),
    }


def best_effort(label, read):
    """Run a single map read, turning any failure into None."""
    try:
        return read()
    except Exception as exc:
        logger.warning(f"Map tab: could not read {label}: {exc}")
        return None


def scrape_map(nav, case):
    """Best-effort map tab scrape; never raises."""
    url = case.tab_url('map')
    try:
        # networkidle never settles with the map tiles and analytics running
        doc = nav.goto(url, wait_until='domcontentloaded', timeout=MAP_TIMEOUT_MS)

        form = best_effort('#mapForm', lambda: doc.query_one('#mapForm'))
        form_action = None
        form_params = None
        if form is not None:
            form_action = best_effort('form action', lambda: doc.attribute(form, 'action'))
            form_params = best_effort('form params', lambda: read_hidden_inputs(doc, form))

        return {
            'tab_url': url,
            'iframe_url': best_effort('map frame', lambda: nav.frame_url(MAP_FRAME_NAME, MAP_FRAME_TIMEOUT_MS)),
            'form_action': form_action,
            'form_params': form_params,
            'copyright': best_effort('copyright', lambda: doc.text_of('#mapCopyright')),
        }
    except Exception as exc:
        logger.error(f"Error while scraping map tab: {exc}")
        return {
            'tab_url': url,
            'iframe_url': None,
            'form_action': None,
            'form_params': None,
            'copyright': None,
            'error': str(exc),
        }


def scrape_case(nav, case=EDINBURGH_CASE):
    """Scrape every tab of a building warrant case into one result dict."""
    logger.info(f"Starting scrape for {case.name} at {case.case_url}")
    summary_part = scrape_summary(nav, case)
    further_info = scrape_further_information(nav, case)
    plots = scrape_plots(nav, case)
    important_dates = scrape_important_dates(nav, case)
    certificates = scrape_certificates(nav, case)
    related_items = scrape_related_items(nav, case)
    map_part = scrape_map(nav, case)

    return {
        'header': summary_part['header'],
        'summary': summary_part['summary'],
        'cases': summary_part['cases'],
        'properties': summary_part['properties'],
        'further_information': further_info,
        'plots': plots,
        'important_dates': important_dates,
        'important_dates_iso': {key: parse_date_value(value) for key, value in important_dates.items()},
        'certificates': certificates,
        'related_items': related_items,
        'map': map_part,
    }


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Scrape every tab of an Edinburgh building warrant case.")
    parser.add_argument('--output', default=EDINBURGH_CASE.output_path,
                        help='Where to write the JSON result (default: result.json).')
    parser.add_argument('--headed', action='store_true',
                        help='Show the browser window instead of running headless.')
    return parser.parse_args(argv)


def main(argv=None):
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT,
                        handlers=[logging.FileHandler(LOG_FILE), logging.StreamHandler()])
    args = parse_args(argv)

    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(headless=not args.headed)
            try:
                page = browser.new_context(user_agent=USER_AGENT).new_page()
                result = scrape_case(PlaywrightNavigator(page), EDINBURGH_CASE)
                write_result(result, args.output)
            finally:
                browser.close()
    except Exception as exc:  # pylint: disable=broad-except
        logger.error(f"Error during scraping: {exc}")


if __name__ == '__main__':
    main()
