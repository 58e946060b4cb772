import httpx

from vendorwatch.services.web_client import HttpScraper, html_to_text

HOME = """
<html><head><title>Acme</title><script>var x = 1;</script></head>
<body>
  <h1>Acme   Cloud</h1>
  <p>Ship faster.</p>
  <footer>
    <a href="/terms">Terms of Service</a>
    <a href="/privacy">Privacy</a>
    <a href="https://twitter.com/acme">Twitter</a>
    <a href="#top">Top</a>
  </footer>
</body></html>
"""

TERMS = "<html><body><h1>Terms</h1><p>Liability is capped.</p><a href='/legal/dpa'>DPA</a></body></html>"
PRIVACY = "<html><body><p>We keep data 30 days.</p></body></html>"
DPA = "<html><body><p>Processing in the EU.</p></body></html>"

PAGES = {
    "/": HOME,
    "/terms": TERMS,
    "/privacy": PRIVACY,
    "/legal/dpa": DPA,
}


def _client(pages=PAGES):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host != "acme.com":
            return httpx.Response(404)
        body = pages.get(request.url.path)
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, text=body, headers={"content-type": "text/html; charset=utf-8"})
    return httpx.Client(transport=httpx.MockTransport(handler), follow_redirects=True)


class TestHtmlToText:
    """HTML rendering"""

    def test_links_kept_as_markdown(self):
        """Anchors become [text](absolute url); scripts are dropped"""
        text = html_to_text(HOME, "https://acme.com/")
        assert "[Terms of Service](https://acme.com/terms)" in text
        assert "[Privacy](https://acme.com/privacy)" in text
        assert "var x" not in text
        assert "Acme Cloud" in text

    def test_fragment_links_left_as_text(self):
        """In-page anchors are not rendered as links"""
        text = html_to_text(HOME, "https://acme.com/")
        assert "(#top)" not in text


class TestHttpScraper:
    """Fetching and crawling over a mocked transport"""

    def test_fetch_ok(self):
        """A 200 HTML page becomes ok text with the raw html kept"""
        scraper = HttpScraper(client=_client(), rate_limit=False)
        result = scraper.fetch("https://acme.com/")
        assert result.ok
        assert "[Terms of Service](https://acme.com/terms)" in result.text
        assert result.html and "<footer>" in result.html

    def test_fetch_http_error(self):
        """A 404 is reported, not raised"""
        scraper = HttpScraper(client=_client(), rate_limit=False)
        result = scraper.fetch("https://acme.com/missing")
        assert not result.ok
        assert result.error

    def test_crawl_limit_and_domain(self):
        """Crawl stays on the vendor domain and stops at the page limit"""
        scraper = HttpScraper(client=_client(), rate_limit=False)
        result = scraper.crawl_site("https://acme.com/", limit=3, max_depth=2)
        assert result.ok
        assert len(result.pages) == 3
        assert all("acme.com" in p for p in result.pages)
        assert "--- Page: https://acme.com/terms ---" in result.text

    def test_crawl_depth(self):
        """Links beyond max_depth are not followed"""
        scraper = HttpScraper(client=_client(), rate_limit=False)
        result = scraper.crawl_site("https://acme.com/", limit=10, max_depth=1)
        assert "https://acme.com/legal/dpa" not in result.pages
        assert "https://acme.com/terms" in result.pages

    def test_crawl_nothing_fetched(self):
        """A dead start URL gives ok=False"""
        scraper = HttpScraper(client=_client(pages={}), rate_limit=False)
        result = scraper.crawl_site("https://acme.com/", limit=3, max_depth=2)
        assert not result.ok
