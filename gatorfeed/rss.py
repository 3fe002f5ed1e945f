"""RSS feed model, parsing and fetching over HTTP."""

from __future__ import annotations

import html
import urllib.error
import urllib.request
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

USER_AGENT = "gator"


@dataclass
class RSSItem:
    """One entry of a feed."""

    title: str = ""
    link: str = ""
    description: str = ""
    pub_date: str = ""


@dataclass
class RSSChannel:
    """The channel of a feed with its entries."""

    title: str = ""
    link: str = ""
    description: str = ""
    items: list[RSSItem] = field(default_factory=list)


@dataclass
class RSSFeed:
    """A parsed RSS document."""

    channel: RSSChannel = field(default_factory=RSSChannel)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _direct_text(element: ET.Element) -> str:
    parts = [element.text or ""]
    parts.extend(child.tail or "" for child in element)
    return "".join(parts)


def _parse_item(element: ET.Element) -> RSSItem:
    item = RSSItem()
    names = {"title": "title", "link": "link", "description": "description", "pubDate": "pub_date"}
    for child in element:
        attr = names.get(_local_name(child.tag))
        if attr is not None:
            setattr(item, attr, _direct_text(child))
    return item


def _merge_channel(channel: RSSChannel, element: ET.Element) -> None:
    for child in element:
        name = _local_name(child.tag)
        if name in ("title", "link", "description"):
            setattr(channel, name, _direct_text(child))
        elif name == "item":
            channel.items.append(_parse_item(child))


def parse_feed(data: bytes | str) -> RSSFeed:
    """Parse an RSS document; titles and descriptions are HTML-unescaped."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as err:
        raise ValueError(f"invalid feed XML: {err}") from err

    channel = RSSChannel()
    for child in root:
        if _local_name(child.tag) == "channel":
            _merge_channel(channel, child)

    channel.title = html.unescape(channel.title)
    channel.description = html.unescape(channel.description)
    for item in channel.items:
        item.title = html.unescape(item.title)
        item.description = html.unescape(item.description)
    return RSSFeed(channel=channel)


def fetch_feed(feed_url: str, timeout: float | None = None) -> RSSFeed:
    """Download and parse the feed at ``feed_url``.

    The body is parsed whatever the response status.
    """
    request = urllib.request.Request(feed_url, headers={"User-Agent": USER_AGENT}, method="GET")
    kwargs = {} if timeout is None else {"timeout": timeout}
    try:
        with urllib.request.urlopen(request, **kwargs) as response:
            body = response.read()
    except urllib.error.HTTPError as err:
        try:
            body = err.read()
        finally:
            err.close()
    return parse_feed(body)