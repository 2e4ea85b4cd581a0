"""Configuration for the planning portal scrapers."""
from dataclasses import dataclass
from urllib.parse import quote, urljoin


@dataclass(frozen=True)
class BuildingWarrantCase:
    """A single Idox building warrant case we can scrape tab by tab."""
    name: str
    case_url: str
    output_path: str = "result.json"
    plot_links_subtab: str = "certificates_of_design"

    def tab_url(self, tab):
        return f"{self.case_url}&activeTab={tab}"


@dataclass(frozen=True)
class BuildingControlCase:
    """A building control application behind a disclaimer page."""
    name: str
    base_url: str
    reference: str
    output_path: str = "result_task2.json"

    @property
    def application_path(self):
        return f"BuildingControl/Display/{self.reference}"

    @property
    def application_url(self):
        return urljoin(self.base_url + "/", self.application_path)

    @property
    def disclaimer_url(self):
        return_url = quote("/" + self.application_path, safe="")
        return urljoin(self.base_url + "/", f"Disclaimer?returnUrl={return_url}")


EDINBURGH_CASE = BuildingWarrantCase(
    name="City of Edinburgh Council",
    case_url=(
        "https://citydev-portal.edinburgh.gov.uk/idoxpa-web/"
        "scottishBuildingWarrantDetails.do?keyVal=T1A67ZEWK0T00"
    ),
)

WNC_CASE = BuildingControlCase(
    name="West Northamptonshire Council",
    base_url="https://wnc.planning-register.co.uk",
    reference="FP/2025/0159",
)

# Scraper tuning knobs
NAV_TIMEOUT_MS = 30000
MAP_TIMEOUT_MS = 60000
MAP_FRAME_TIMEOUT_MS = 10000
HTTP_TIMEOUT_SECONDS = 30
USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)

LOG_FILE = "scrape.log"
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
