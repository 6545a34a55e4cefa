import json

import pytest

from awsshare.dom import parse_html
from awsshare.tabs import ACTIVATE_TAB_FN, SNAPSHOT_JS

EC2_URL = (
    "https://us-east-1.console.aws.amazon.com/ec2/home?region=us-east-1"
    "#InstanceDetails:instanceId=i-0abc12345def67890"
)
LIGHTSAIL_URL = "https://lightsail.aws.amazon.com/ls/webapp/us-east-1/instances/my-wordpress/connect"


def field_html(label: str, value_html: str) -> str:
    """One labelled cell of the EC2 details grid."""
    return (
        '<div class="awsui-column">'
        f'<div data-analytics="label-for-{label}">{label}</div>'
        f"<div>{value_html}</div>"
        "</div>"
    )


EC2_DETAILS_HTML = (
    "<html><body>"
    '<div data-testid="header-title"><h1>Instance summary for i-0abc12345def67890 (web-1)</h1></div>'
    '<div class="awsui-grid">'
    + field_html("Instance ID", '<span class="text-to-copy">i-0abc12345def67890</span>')
    + field_html("Instance state", "<span>running</span>")
    + field_html("Instance type", "<span>t3.micro</span>")
    + field_html("Availability Zone", "<span>us-east-1a</span>")
    + field_html("Public IPv4 address", '<a href="http://34.201.5.9">34.201.5.9 | open address</a>')
    + field_html("Private IPv4 addresses", "<span>172.31.5.10</span>")
    + field_html("VPC ID", '<a href="#VpcDetails:VpcId=vpc-0a1b2c3d">vpc-0a1b2c3d</a>')
    + field_html("Subnet ID", '<a href="#SubnetDetails:subnetId=subnet-0123abcd">subnet-0123abcd</a>')
    + field_html("AMI ID", "<span>ami-0abcdef1234567890</span>")
    + field_html("AMI name", "<span>ubuntu/images/hvm-ssd/ubuntu-jammy-22.04-amd64-server-20240101</span>")
    + field_html("Key pair assigned at launch", "<span>web-key</span>")
    + field_html("Monitoring", "<span>disabled</span>")
    + field_html("Tenancy", "<span>-</span>")
    + "</div></body></html>"
)

EC2_SECURITY_HTML = """<html><body>
<div data-analytics="security-details">
  <a data-analytics="security-groups-link" href="#SecurityGroup:groupId=sg-0123abcd">sg-0123abcd (launch-wizard-1)</a>
  <a href="https://console.aws.amazon.com/iam/home#/roles/web-role">web-role</a>
</div>
<div data-analytics="inbound-rules">
  <table>
    <thead><tr><th>Security group rule ID</th><th>Port range</th><th>Protocol</th><th>Source</th><th>Security groups</th><th>Description</th></tr></thead>
    <tbody>
      <tr><td>sgr-0a1</td><td>22</td><td>TCP</td><td>0.0.0.0/0</td><td>launch-wizard-1</td><td>SSH</td></tr>
      <tr><td>sgr-0a2</td><td>443</td><td>TCP</td><td>0.0.0.0/0</td><td>launch-wizard-1</td><td>-</td></tr>
    </tbody>
  </table>
</div>
<div data-analytics="outbound-rules">
  <table>
    <thead><tr><th>Security group rule ID</th><th>Port range</th><th>Protocol</th><th>Destination</th><th>Security groups</th><th>Description</th></tr></thead>
    <tbody>
      <tr><td>sgr-0b1</td><td>All</td><td>All</td><td>0.0.0.0/0</td><td>launch-wizard-1</td><td>-</td></tr>
    </tbody>
  </table>
</div>
</body></html>"""

EC2_NETWORKING_HTML = (
    "<html><body>"
    '<div class="awsui-grid">'
    '<div class="awsui-column"><div data-analytics="label-for-VPC ID">VPC ID</div>'
    '<div data-analytics="copy-to-clipboard-vpc-id"><span class="text-to-copy">vpc-0a1b2c3d</span></div></div>'
    + field_html("Public IPv4 DNS", "<span>ec2-34-201-5-9.compute-1.amazonaws.com</span>")
    + field_html("Public IPv4 address", "<span>34.201.5.9</span>")
    + "</div>"
    "<table>"
    "<thead><tr><th>Interface ID</th><th>Description</th><th>Subnet ID</th>"
    "<th>Private IPv4 address</th><th>Public IPv4 address</th></tr></thead>"
    "<tbody><tr><td>eni-0aa11bb22</td><td>Primary network interface</td><td>subnet-0123abcd</td>"
    "<td>172.31.5.10</td><td>34.201.5.9</td></tr></tbody>"
    "</table>"
    "<p>Security groups sg-0123abcd</p>"
    "</body></html>"
)

EC2_STORAGE_HTML = (
    "<html><body>"
    '<div class="awsui-grid">'
    + field_html("Root device name", "<span>/dev/xvda</span>")
    + field_html("Root device type", "<span>EBS</span>")
    + "</div>"
    '<div data-analytics="block-devices"><table>'
    "<thead><tr><th>Volume ID</th><th>Device name</th><th>Volume size (GiB)</th><th>Attachment status</th>"
    "<th>Encrypted</th><th>Delete on termination</th></tr></thead>"
    "<tbody>"
    "<tr><td>vol-0abc123</td><td>/dev/xvda</td><td>8</td><td>Attached</td><td>Yes</td><td>Yes</td></tr>"
    "<tr><td>vol-0def456</td><td>/dev/sdf</td><td>100</td><td>Attached</td><td>No</td><td>No</td></tr>"
    "</tbody></table></div>"
    "</body></html>"
)

EC2_TAGS_HTML = """<html><body>
<table>
  <thead><tr><th>Key</th><th>Value</th></tr></thead>
  <tbody>
    <tr><td>Name</td><td>web-1</td></tr>
    <tr><td>env</td><td>prod</td></tr>
  </tbody>
</table>
</body></html>"""

LIGHTSAIL_CONNECT_HTML = """<html><body>
<h1>my-wordpress</h1>
<span data-testid="ls.instanceStatus.running">Running</span>
<div data-testid="ls.blueprintName">WordPress 6.4.2</div>
<div data-testid="ls.bundleDetailsDisplay.messageFormat">2 GB RAM, 2 vCPUs, 60 GB SSD, 3 TB Transfer, $12/month</div>
<span data-testid="instances.descriptions.generalPurpose">General purpose</span>
<div data-testid="instances.descriptions.customKeySummary">Using key <strong>my-key</strong></div>
<p>Username: bitnami</p>
<a href="/ls/remote/us-east-1/instances/my-wordpress/terminal">Connect using SSH</a>
<p>Zone us-east-1a</p>
<div><div><span data-testid="instances.label.staticIpAddress">Static IP address</span></div><div><span class="text-to-copy">3.91.20.5</span></div></div>
<div><div><span data-testid="instances.label.privateIpAddress">Private IPv4 address</span></div><div><span class="text-to-copy">172.26.3.4</span></div></div>
<p>Created: Jan 5, 2024</p>
</body></html>"""

LIGHTSAIL_STORAGE_HTML = """<html><body>
<div class="integ_systemDiskSection">
  <span data-testid="ls.displayHelpersInstance.memoryInGB">60 GB</span>
  <div class="selectedDiskPath"><strong>/dev/xvda</strong></div>
</div>
<div class="integ_attachedDisksSection">
  <div class="ResourceReferenceItem">
    <span class="ResourceReferenceName">data-disk</span>
    <span data-testid="ls.displayHelpersInstance.memoryInGB">32 GB</span>
    <div class="selectedDiskPath"><strong>/dev/xvdf</strong></div>
  </div>
</div>
</body></html>"""

LIGHTSAIL_NETWORKING_HTML = """<html><body>
<div><span data-testid="ls.instanceNetworkingIp.publicIp">Public IPv4 address</span><h2>3.91.20.5</h2></div>
<div><span data-testid="ls.instanceNetworkingIp.privateIp">Private IPv4 address</span><h2>172.26.3.4</h2></div>
<div data-testid="ls.instanceNetworkingIp.staticIpDescription">Static IP: StaticIp-1 is attached</div>
<div class="integ_ipv4FirewallSection">
  <table>
    <thead><tr><th>Application</th><th>Protocol</th><th>Port or range / Code</th><th>Restricted to</th><th></th></tr></thead>
    <tbody>
      <tr><td>SSH</td><td>TCP</td><td><div>22</div></td><td>Any IPv4 address</td><td>Edit</td></tr>
      <tr><td>Custom</td><td>TCP</td><td><div>5010050500</div></td><td></td><td></td></tr>
    </tbody>
  </table>
</div>
<div data-testid="ls.loadBalancersSection.noLoadBalancers">No load balancers attached</div>
</body></html>"""

LIGHTSAIL_DOMAINS_HTML = "<html><body><p>Nothing to show here</p></body></html>"

LIGHTSAIL_TAGS_HTML = """<html><body>
<table class="tags-table">
  <thead><tr><th>Key</th><th>Value</th></tr></thead>
  <tbody><tr><td>env</td><td>staging</td></tr></tbody>
</table>
</body></html>"""

EC2_TABS_HTML = {
    "details": EC2_DETAILS_HTML,
    "security": EC2_SECURITY_HTML,
    "networking": EC2_NETWORKING_HTML,
    "storage": EC2_STORAGE_HTML,
    "tags": EC2_TAGS_HTML,
}

LIGHTSAIL_TABS_HTML = {
    "connect": LIGHTSAIL_CONNECT_HTML,
    "storage": LIGHTSAIL_STORAGE_HTML,
    "networking": LIGHTSAIL_NETWORKING_HTML,
    "domains": LIGHTSAIL_DOMAINS_HTML,
    "tags": LIGHTSAIL_TAGS_HTML,
}


class FakePage:
    """Stands in for a browser-use page.

    Serves tab switches and snapshots from a name -> HTML mapping. Any
    other script gets the response of the first needle it contains, or
    "ok".
    """

    def __init__(self, tabs, url, responses=None, title="AWS Console"):
        self.tabs = dict(tabs)
        self.url = url
        self.title = title
        self.responses = dict(responses or {})
        self.active = next(iter(self.tabs), None)
        self.clicked = []
        self.evaluated = []

    async def evaluate(self, script):
        self.evaluated.append(script)
        if script == SNAPSHOT_JS:
            return json.dumps({
                "url": self.url,
                "title": self.title,
                "html": self.tabs.get(self.active, "<html></html>"),
                "frameHtml": None,
            })
        if ACTIVATE_TAB_FN in script:
            spec = json.loads(script.rsplit(")(", 1)[1][:-1])
            name = spec["testId"] or spec["href"] or spec["label"].lower()
            if name not in self.tabs:
                return "missing"
            if name == self.active:
                return "active"
            self.active = name
            self.clicked.append(name)
            return "clicked"
        for needle, response in self.responses.items():
            if needle in script:
                if isinstance(response, Exception):
                    raise response
                return response
        return "ok"


@pytest.fixture
def ec2_page():
    return FakePage(EC2_TABS_HTML, EC2_URL)


@pytest.fixture
def lightsail_page():
    return FakePage(LIGHTSAIL_TABS_HTML, LIGHTSAIL_URL)


@pytest.fixture
def ec2_docs():
    return {name: parse_html(html) for name, html in EC2_TABS_HTML.items()}


@pytest.fixture
def lightsail_docs():
    return {name: parse_html(html) for name, html in LIGHTSAIL_TABS_HTML.items()}


SETTINGS_KEYS = (
    "AWSSHARE_COMPOSER",
    "AWSSHARE_BROWSER_MODE",
    "AWSSHARE_HEADLESS",
    "AWSSHARE_STEALTH",
    "AWSSHARE_CHROME_USER_DATA",
    "AWSSHARE_CHROME_PROFILE",
    "AWSSHARE_CDP_ENDPOINT",
    "AWSSHARE_TAB_DELAY",
    "AWSSHARE_LOGIN_POLL",
    "AWSSHARE_PAGE_SETTLE",
)


@pytest.fixture
def isolated_settings(tmp_path, monkeypatch):
    """Point the settings file at a temp dir and clear AWSSHARE_* variables.

    Every key is set then deleted through monkeypatch so that values the
    code under test writes straight into os.environ are undone too.
    """
    for key in SETTINGS_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    path = tmp_path / ".env"
    monkeypatch.setenv("AWSSHARE_SETTINGS_FILE", str(path))
    return path
