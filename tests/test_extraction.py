import asyncio

import pytest

from conftest import FakeResponse, FakeSession
from policylens.models.analysis import (
    EXTRACTION_FAILURE_MARKER,
    ExtractionFailure,
    ExtractionSuccess,
    PartyInput,
)
from policylens.services.extraction import SourceExtractor, html_to_text


HTML = """
<html>
  <head><title>Policy</title><style>body { color: red; }</style></head>
  <body>
    <header>Site header</header>
    <nav><a href="/">Home</a></nav>
    <main>
      <h1>Our   policies</h1>
      <p>We will cut
         consumption tax.</p>
      <form><input name="q"/>Search</form>
      <iframe src="https://video.example.com"></iframe>
    </main>
    <aside>Donate now</aside>
    <footer>Copyright</footer>
    <script>var tracking = true;</script>
  </body>
</html>
"""


def test_html_to_text_strips_noise_and_collapses_whitespace():
    text = html_to_text(HTML)
    assert text == "Policy Our policies We will cut consumption tax."


def test_html_to_text_truncates():
    text = html_to_text("<p>" + "a" * 100 + "</p>", max_chars=10)
    assert text == "a" * 10


@pytest.mark.asyncio
async def test_url_source_success_sends_browser_user_agent():
    session = FakeSession({"https://a.example/policy": FakeResponse(200, HTML)})
    extractor = SourceExtractor(session=session, user_agent="Mozilla/5.0 test")

    outcome = await extractor.extract(PartyInput(id="a", name="A", url="https://a.example/policy"))

    assert isinstance(outcome, ExtractionSuccess)
    assert outcome.ok
    assert "consumption tax" in outcome.text
    assert session.requests[0]["headers"]["User-Agent"] == "Mozilla/5.0 test"


@pytest.mark.asyncio
async def test_non_success_status_is_failure():
    session = FakeSession({"https://a.example/gone": FakeResponse(404, "Not found")})
    extractor = SourceExtractor(session=session)

    outcome = await extractor.extract(PartyInput(id="a", name="A", url="https://a.example/gone"))

    assert isinstance(outcome, ExtractionFailure)
    assert not outcome.ok
    assert outcome.reason.startswith(EXTRACTION_FAILURE_MARKER)
    assert "404" in outcome.reason


@pytest.mark.asyncio
async def test_network_error_is_failure():
    extractor = SourceExtractor(session=FakeSession())

    outcome = await extractor.extract(PartyInput(id="b", name="B", url="https://unreachable.example"))

    assert isinstance(outcome, ExtractionFailure)
    assert "network error" in outcome.reason


@pytest.mark.asyncio
async def test_slow_source_times_out():
    session = FakeSession({"https://slow.example": FakeResponse(200, HTML, delay=1.0)})
    extractor = SourceExtractor(session=session, timeout_sec=0.05)

    outcome = await extractor.extract(PartyInput(id="s", name="S", url="https://slow.example"))

    assert isinstance(outcome, ExtractionFailure)
    assert "timed out" in outcome.reason


@pytest.mark.asyncio
async def test_page_without_text_is_failure():
    session = FakeSession({"https://empty.example": FakeResponse(200, "<script>x()</script>")})
    extractor = SourceExtractor(session=session)

    outcome = await extractor.extract(PartyInput(id="e", name="E", url="https://empty.example"))

    assert isinstance(outcome, ExtractionFailure)
    assert "no readable text" in outcome.reason


@pytest.mark.asyncio
async def test_raw_text_passes_through_with_length_cap():
    extractor = SourceExtractor(session=FakeSession(), max_chars=12)

    outcome = await extractor.extract(PartyInput(id="t", name="T", text="Line one\n\nLine two"))

    assert isinstance(outcome, ExtractionSuccess)
    assert outcome.text == "Line one\n\nLi"


@pytest.mark.asyncio
async def test_missing_source_is_failure():
    extractor = SourceExtractor(session=FakeSession())

    outcome = await extractor.extract(PartyInput(id="n", name="N"))

    assert isinstance(outcome, ExtractionFailure)
    assert outcome.reason == f"{EXTRACTION_FAILURE_MARKER} no source provided"


@pytest.mark.asyncio
async def test_extract_all_isolates_failures_and_preserves_order():
    session = FakeSession({
        "https://a.example": FakeResponse(200, "<p>Alpha</p>"),
        "https://slow.example": FakeResponse(200, "<p>Slow but fine</p>", delay=0.05),
    })
    extractor = SourceExtractor(session=session, timeout_sec=1.0)
    parties = [
        PartyInput(id="slow", name="Slow", url="https://slow.example"),
        PartyInput(id="down", name="Down", url="https://down.example"),
        PartyInput(id="a", name="A", url="https://a.example"),
        PartyInput(id="none", name="None"),
    ]

    outcomes = await extractor.extract_all(parties)

    assert [o.party_id for o in outcomes] == ["slow", "down", "a", "none"]
    assert [o.ok for o in outcomes] == [True, False, True, False]


@pytest.mark.asyncio
async def test_injected_session_is_not_closed():
    session = FakeSession()
    async with SourceExtractor(session=session):
        await asyncio.sleep(0)
    assert session.closed is False
