from datetime import UTC, datetime

import httpx

from workdigest.observers.jira import JiraClient
from workdigest.types import ActivityKind

START = datetime(2024, 3, 1, tzinfo=UTC)
END = datetime(2024, 3, 1, 23, 59, 59, tzinfo=UTC)


def issue(key: str, project: str, summary: str, status: str = 'In Progress') -> dict:
    return {
        'key': key,
        'fields': {
            'summary': summary,
            'status': {'name': status},
            'project': {'key': project},
            'updated': '2024-03-01T10:00:00.000+0000',
            'resolutiondate': '2024-03-01T11:00:00.000+0000',
        },
    }


def jira_api(requests: list[httpx.Request]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        jql = request.url.params['jql']
        if jql.startswith('project in'):
            return httpx.Response(200, json={'issues': [issue('SUP-9', 'SUP', 'Refund fails', 'Done')]})
        return httpx.Response(
            200,
            json={'issues': [issue('WEB-42', 'WEB', 'Login page 500s'), issue('SUP-9', 'SUP', 'Refund fails', 'Done')]},
        )

    return httpx.MockTransport(handler)


def client(requests: list[httpx.Request], **kwargs) -> JiraClient:
    return JiraClient(
        base_url='https://acme.atlassian.net',
        username='bot@acme.test',
        api_token='secret',
        transport=jira_api(requests),
        **kwargs,
    )


def test_tickets_and_customer_issues_are_split_by_project():
    requests = []
    records = client(requests, customer_projects=['SUP']).fetch_activity('alice', START, END)

    assert [(r.kind, r.provenance) for r in records] == [
        (ActivityKind.TICKET, 'WEB-42'),
        (ActivityKind.CUSTOMER_ISSUE, 'SUP-9'),
    ]
    assert records[0].render() == '- Login page 500s [In Progress] (WEB-42)'
    assert records[0].url == 'https://acme.atlassian.net/browse/WEB-42'
    assert records[0].timestamp == datetime(2024, 3, 1, 10, tzinfo=UTC)
    assert records[1].timestamp == datetime(2024, 3, 1, 11, tzinfo=UTC)


def test_without_customer_projects_everything_is_a_ticket():
    requests = []
    records = client(requests).fetch_activity('alice', START, END)

    assert [r.kind for r in records] == [ActivityKind.TICKET, ActivityKind.TICKET]
    assert len(requests) == 1


def test_jql_window_and_auth():
    requests = []
    client(requests).fetch_activity('alice', START, END)

    jql = requests[0].url.params['jql']
    assert "assignee = 'alice'" in jql
    assert "updated >= '2024-03-01 00:00'" in jql
    assert "updated <= '2024-03-01 23:59'" in jql
    assert requests[0].headers['Authorization'].startswith('Basic ')
