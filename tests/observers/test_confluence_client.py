from datetime import UTC, datetime

import httpx

from workdigest.observers.confluence import ConfluenceClient

START = datetime(2024, 3, 1, tzinfo=UTC)
END = datetime(2024, 3, 1, 23, 59, 59, tzinfo=UTC)

PAGES = {
    'results': [
        {
            'title': 'Billing migration RFC',
            'space': {'key': 'ENG'},
            'version': {'number': 1, 'when': '2024-03-01T08:00:00.000Z'},
            '_links': {'webui': '/spaces/ENG/pages/1'},
        },
        {
            'title': 'On-call runbook',
            'space': {'key': 'OPS'},
            'version': {'number': 14, 'when': '2024-03-01T17:45:00.000Z'},
            '_links': {'webui': '/spaces/OPS/pages/2'},
        },
    ]
}


def test_created_and_updated_pages():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=PAGES)

    client = ConfluenceClient(
        base_url='https://acme.atlassian.net',
        username='bot@acme.test',
        api_token='secret',
        transport=httpx.MockTransport(handler),
    )
    records = client.fetch_activity('alice', START, END)

    assert [r.render() for r in records] == [
        '- Created: Billing migration RFC (ENG)',
        '- Updated: On-call runbook (OPS)',
    ]
    assert records[0].url == 'https://acme.atlassian.net/wiki/spaces/ENG/pages/1'
    assert records[1].timestamp == datetime(2024, 3, 1, 17, 45, tzinfo=UTC)
    assert requests[0].url.path == '/wiki/rest/api/content/search'
    assert 'contributor = "alice"' in requests[0].url.params['cql']
