import http.server
import threading

import pytest

from gatorfeed.rss import RSSChannel, RSSFeed, RSSItem, fetch_feed, parse_feed

SAMPLE = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example &amp;amp; Co</title>
    <link>https://example.com/</link>
    <description>All the news</description>
    <item>
      <title>First post</title>
      <link>https://example.com/1</link>
      <description><![CDATA[<p>Hi &amp; bye</p>]]></description>
      <pubDate>Mon, 02 Jan 2006 15:04:05 -0700</pubDate>
    </item>
    <item>
      <title>Second post</title>
      <link>https://example.com/2</link>
    </item>
  </channel>
</rss>
"""


def test_parse_channel_fields():
    feed = parse_feed(SAMPLE)
    assert feed.channel.title == "Example & Co"
    assert feed.channel.link == "https://example.com/"
    assert feed.channel.description == "All the news"


def test_parse_items_in_order():
    items = parse_feed(SAMPLE).channel.items
    assert [item.title for item in items] == ["First post", "Second post"]
    assert items[0].link == "https://example.com/1"
    assert items[0].pub_date == "Mon, 02 Jan 2006 15:04:05 -0700"


def test_item_description_unescaped():
    first = parse_feed(SAMPLE).channel.items[0]
    assert first.description == "<p>Hi & bye</p>"


def test_missing_item_fields_are_empty():
    second = parse_feed(SAMPLE).channel.items[1]
    assert second == RSSItem(title="Second post", link="https://example.com/2")


def test_parse_accepts_text():
    feed = parse_feed(SAMPLE.decode("utf-8"))
    assert feed.channel.title == "Example & Co"


def test_document_without_channel_gives_empty_feed():
    assert parse_feed("<rss></rss>") == RSSFeed(channel=RSSChannel())


def test_namespaced_element_matches_local_name():
    doc = (
        '<rss xmlns:atom="http://www.w3.org/2005/Atom"><channel>'
        "<link>https://example.com/</link>"
        '<atom:link href="https://example.com/feed" rel="self"/>'
        "</channel></rss>"
    )
    assert parse_feed(doc).channel.link == ""


def test_invalid_xml_raises_value_error():
    with pytest.raises(ValueError):
        parse_feed(b"<rss><channel></rss>")


class _Handler(http.server.BaseHTTPRequestHandler):
    status = 200
    seen_agents: list = []

    def do_GET(self):
        type(self).seen_agents.append(self.headers.get("User-Agent"))
        self.send_response(type(self).status)
        self.send_header("Content-Type", "application/rss+xml")
        self.send_header("Content-Length", str(len(SAMPLE)))
        self.end_headers()
        self.wfile.write(SAMPLE)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def server():
    _Handler.status = 200
    _Handler.seen_agents = []
    httpd = http.server.ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{httpd.server_address[1]}/feed.xml"
    finally:
        httpd.shutdown()
        httpd.server_close()


def test_fetch_feed_sends_user_agent_and_parses(server):
    feed = fetch_feed(server, timeout=5)
    assert feed == parse_feed(SAMPLE)
    assert _Handler.seen_agents == ["gator"]


def test_fetch_feed_parses_body_of_error_response(server):
    _Handler.status = 404
    feed = fetch_feed(server, timeout=5)
    assert len(feed.channel.items) == 2


def test_fetch_feed_rejects_bad_url():
    with pytest.raises(ValueError):
        fetch_feed("not a url")