import asyncio

import pytest
from aiohttp import web
from aiohttp import test_utils

from politecrawl.crawler.fetcher import FetchError, FetchResult, WebFetcher

INDEX_HTML = """
<html><body>
  <a href="/p1">one</a>
  <a href="p2?x=1">two</a>
  <a href="/p1">one again</a>
  <a href="https://other.example/page">external</a>
  <a href="mailto:someone@example.com">mail</a>
</body></html>
"""


def make_app():
    async def index(request):
        return web.Response(text=INDEX_HTML, content_type='text/html')

    async def user_agent(request):
        return web.Response(text=request.headers.get('User-Agent', ''), content_type='text/plain')

    async def missing(request):
        raise web.HTTPNotFound()

    async def image(request):
        return web.Response(body=b'\x89PNG', content_type='image/png')

    async def big(request):
        return web.Response(text='x' * 5000, content_type='text/html')

    async def slow(request):
        await asyncio.sleep(0.5)
        return web.Response(text='late', content_type='text/html')

    app = web.Application()
    app.router.add_get('/', index)
    app.router.add_get('/ua', user_agent)
    app.router.add_get('/missing', missing)
    app.router.add_get('/image.png', image)
    app.router.add_get('/big', big)
    app.router.add_get('/slow', slow)
    return app


def with_server(test_coro, **fetcher_kwargs):
    async def scenario():
        server = test_utils.TestServer(make_app())
        await server.start_server()
        try:
            async with WebFetcher(**fetcher_kwargs) as fetcher:
                return await test_coro(server, fetcher)
        finally:
            await server.close()

    return asyncio.run(scenario())


def test_fetch_returns_body_and_absolute_links_in_order():
    async def check(server, fetcher):
        url = str(server.make_url('/'))
        page = await fetcher.fetch(url)
        return url, page

    url, page = with_server(check)

    assert page.status_code == 200
    assert b'<a href="/p1">' in page.content
    assert page.links == [
        url + 'p1',
        url + 'p2?x=1',
        url + 'p1',
        'https://other.example/page',
    ]


def test_fetch_sends_configured_user_agent():
    async def check(server, fetcher):
        return await fetcher.fetch(str(server.make_url('/ua')))

    page = with_server(check, user_agent='politecrawl-test/1.0')
    assert page.content == b'politecrawl-test/1.0'


@pytest.mark.parametrize("path, message", [
    ('/missing', 'HTTP 404'),
    ('/image.png', 'Non-text content type'),
])
def test_fetch_rejects_error_status_and_binary_content(path, message):
    async def check(server, fetcher):
        with pytest.raises(FetchError) as excinfo:
            await fetcher.fetch(str(server.make_url(path)))
        return excinfo.value, fetcher.get_stats()

    error, stats = with_server(check)
    assert message in error.message
    assert stats['failed_requests'] == 1
    assert stats['successful_requests'] == 0


def test_fetch_enforces_size_limit():
    async def check(server, fetcher):
        with pytest.raises(FetchError) as excinfo:
            await fetcher.fetch(str(server.make_url('/big')))
        return excinfo.value

    error = with_server(check, max_content_size=1000)
    assert 'too large' in error.message or 'size limit' in error.message


def test_fetch_times_out():
    async def check(server, fetcher):
        with pytest.raises(FetchError) as excinfo:
            await fetcher.fetch(str(server.make_url('/slow')))
        return excinfo.value

    error = with_server(check, request_timeout=0.1)
    assert error.message == 'Request timeout'


def test_connection_failure_is_a_fetch_error():
    async def scenario():
        async with WebFetcher(request_timeout=2) as fetcher:
            with pytest.raises(FetchError):
                await fetcher.fetch('http://127.0.0.1:1/')

    asyncio.run(scenario())


def test_fetch_result_derived_fields():
    from datetime import datetime, timezone

    now = datetime.now(timezone.utc)
    result = FetchResult(
        url='https://www.a.example/page',
        success=True,
        started_at=now,
        finished_at=now,
        elapsed=0.25,
        size_bytes=2048,
    )

    assert result.domain == 'a.example'
    assert result.size_kb == 2.0
    assert result.elapsed_ms == 250
