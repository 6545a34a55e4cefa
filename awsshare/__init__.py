"""
awsshare - Share AWS EC2 and Lightsail instance details by email

Reads an instance's detail page in the AWS Console tab by tab, merges
what each tab shows into one record, and renders it as an email body
for the configured mail composer. A companion CLI exports every
instance of an account to JSON or CSV.

Usage:
    from awsshare import ConsoleBrowser, scrape_instance, format_body

    browser = ConsoleBrowser()
    await browser.start()
    page = await browser.goto(instance_url)
    record = await scrape_instance(page, "ec2")
    print(format_body(record))
"""

from awsshare.aggregator import aggregate, scrape_instance
from awsshare.browser import ConsoleBrowser
from awsshare.formatter import build_subject, format_body
from awsshare.models import InstanceRecord

__version__ = "0.1.0"
__all__ = ["ConsoleBrowser", "InstanceRecord", "aggregate", "scrape_instance", "format_body", "build_subject"]
