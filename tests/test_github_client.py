import logging
import time
import unittest
from unittest.mock import MagicMock, Mock

import requests

logging.disable(logging.CRITICAL)

BASE = "https://api.github.com"


def _response(status=200, payload=None, json_error=None):
    response = MagicMock()
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    response.status_code = status
    response.ok = status < 400
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


def _client(*responses, deadline=None, **config):
    from issue_operator.services.github_client import GitHubClient, GitHubClientConfig

    session = Mock()
    session.request = Mock(side_effect=list(responses))
    return GitHubClient(session, GitHubClientConfig(**config), deadline=deadline), session


def _issue_json(number, title, body="", **extra):
    data = {"url": f"{BASE}/repos/octo/hello/issues/{number}", "number": number, "title": title,
            "body": body, "state": "open"}
    data.update(extra)
    return data


class ListIssuesTests(unittest.TestCase):
    def test_get_collection_with_protocol_headers(self):
        resp = _response(200, [_issue_json(1, "A", "a"), _issue_json(2, "B", None)])
        client, session = _client(resp)

        issues = client.list_issues("octo", "hello")

        self.assertEqual([(i.number, i.title, i.body) for i in issues], [(1, "A", "a"), (2, "B", "")])
        args, kwargs = session.request.call_args
        self.assertEqual(args, ("GET", f"{BASE}/repos/octo/hello/issues"))
        self.assertEqual(
            kwargs["headers"],
            {"Accept": "application/vnd.github.v3+json", "Content-Type": "application/json"},
        )
        self.assertIsNone(kwargs["json"])
        self.assertEqual(kwargs["timeout"], 30.0)
        resp.__exit__.assert_called_once()

    def test_non_success_status_is_an_error_and_body_is_released(self):
        from issue_operator.services.errors import RemoteServiceError

        resp = _response(500, {"message": "boom"})
        client, _ = _client(resp)

        with self.assertRaises(RemoteServiceError) as ctx:
            client.list_issues("octo", "hello")

        self.assertEqual(ctx.exception.status_code, 500)
        self.assertIn("500", str(ctx.exception))
        resp.__exit__.assert_called_once()
        resp.json.assert_not_called()

    def test_decode_failure_is_an_error(self):
        from issue_operator.services.errors import RemoteServiceError

        resp = _response(200, json_error=ValueError("Expecting value"))
        client, _ = _client(resp)

        with self.assertRaises(RemoteServiceError):
            client.list_issues("octo", "hello")
        resp.__exit__.assert_called_once()

    def test_non_list_payload_is_an_error(self):
        from issue_operator.services.errors import RemoteServiceError

        client, _ = _client(_response(200, {"message": "Not Found"}))

        with self.assertRaises(RemoteServiceError):
            client.list_issues("octo", "hello")

    def test_transport_failure_is_an_error(self):
        from issue_operator.services.errors import RemoteServiceError

        client, _ = _client(requests.ConnectionError("connection refused"))

        with self.assertRaises(RemoteServiceError) as ctx:
            client.list_issues("octo", "hello")
        self.assertIsNone(ctx.exception.status_code)

    def test_pull_request_link_is_read(self):
        client, _ = _client(
            _response(
                200,
                [
                    _issue_json(1, "A", pull_request={"url": f"{BASE}/repos/octo/hello/pulls/1"}),
                    _issue_json(2, "B", pullRequest={"url": f"{BASE}/repos/octo/hello/pulls/2"}),
                    _issue_json(3, "C"),
                ],
            )
        )

        issues = client.list_issues("octo", "hello")

        self.assertEqual([i.has_pull_request for i in issues], [True, True, False])
        self.assertEqual(issues[0].pull_request_url, f"{BASE}/repos/octo/hello/pulls/1")


class WriteIssueTests(unittest.TestCase):
    def test_create_posts_open_issue(self):
        client, session = _client(_response(201, _issue_json(5, "T", "D")))

        issue = client.create_issue("octo", "hello", "T", "D")

        self.assertEqual(issue.number, 5)
        args, kwargs = session.request.call_args
        self.assertEqual(args, ("POST", f"{BASE}/repos/octo/hello/issues"))
        self.assertEqual(kwargs["json"], {"title": "T", "body": "D", "state": "open"})

    def test_update_posts_to_single_issue(self):
        client, session = _client(_response(200, _issue_json(7, "T", "New")))

        issue = client.update_issue("octo", "hello", 7, "New", "T")

        self.assertEqual(issue.body, "New")
        args, kwargs = session.request.call_args
        self.assertEqual(args, ("POST", f"{BASE}/repos/octo/hello/issues/7"))
        self.assertEqual(kwargs["json"], {"title": "T", "body": "New", "state": "open"})

    def test_create_failure_status_is_an_error(self):
        from issue_operator.services.errors import RemoteServiceError

        client, _ = _client(_response(422, {"message": "Validation Failed"}))

        with self.assertRaises(RemoteServiceError) as ctx:
            client.create_issue("octo", "hello", "T", "D")
        self.assertEqual(ctx.exception.status_code, 422)

    def test_close_matches_by_title_and_posts_closed_state(self):
        from types import SimpleNamespace

        client, session = _client(
            _response(200, [_issue_json(3, "other"), _issue_json(7, "T", "D")]),
            _response(200, _issue_json(7, "T", "D", state="closed")),
        )

        closed = client.close_issue("octo", "hello", SimpleNamespace(title="T", description="D"))

        self.assertEqual(closed.state, "closed")
        self.assertEqual(session.request.call_count, 2)
        args, kwargs = session.request.call_args
        self.assertEqual(args, ("POST", f"{BASE}/repos/octo/hello/issues/7"))
        self.assertEqual(kwargs["json"], {"title": "T", "body": "D", "state": "closed"})

    def test_close_without_match_is_not_found(self):
        from types import SimpleNamespace

        from issue_operator.services.errors import IssueNotFoundError

        client, session = _client(_response(200, [_issue_json(3, "other")]))

        with self.assertRaises(IssueNotFoundError):
            client.close_issue("octo", "hello", SimpleNamespace(title="T", description="D"))
        self.assertEqual(session.request.call_count, 1)

    def test_close_prefers_recorded_number(self):
        from types import SimpleNamespace

        client, session = _client(
            _response(200, [_issue_json(3, "T"), _issue_json(9, "renamed")]),
            _response(200, _issue_json(9, "T", "D", state="closed")),
        )

        desired = SimpleNamespace(title="T", description="D", issue_number=9)
        client.close_issue("octo", "hello", desired, prefer_number=True)

        args, _ = session.request.call_args
        self.assertEqual(args[1], f"{BASE}/repos/octo/hello/issues/9")


class ConfigAndDeadlineTests(unittest.TestCase):
    def test_custom_base_url_and_accept(self):
        client, session = _client(
            _response(200, []), base_url="https://ghe.example/api/v3/", accept="application/vnd.ghe.v3+json"
        )

        client.list_issues("octo", "hello")

        args, kwargs = session.request.call_args
        self.assertEqual(args[1], "https://ghe.example/api/v3/repos/octo/hello/issues")
        self.assertEqual(kwargs["headers"]["Accept"], "application/vnd.ghe.v3+json")

    def test_timeout_is_clipped_to_deadline(self):
        client, session = _client(_response(200, []), deadline=time.monotonic() + 5)

        client.list_issues("octo", "hello")

        _, kwargs = session.request.call_args
        self.assertLessEqual(kwargs["timeout"], 5)
        self.assertGreater(kwargs["timeout"], 0)

    def test_expired_deadline_sends_nothing(self):
        from issue_operator.services.errors import RemoteServiceError

        client, session = _client(_response(200, []), deadline=time.monotonic() - 1)

        with self.assertRaises(RemoteServiceError):
            client.list_issues("octo", "hello")
        session.request.assert_not_called()

    def test_response_finishing_after_deadline_is_rejected(self):
        from unittest.mock import patch

        from issue_operator.services.errors import RemoteServiceError

        response = _response(200, [])
        client, session = _client(response, deadline=150.0)

        with patch("issue_operator.services.github_client.time") as clock:
            # Before the request, then once the response is in.
            clock.monotonic.side_effect = [100.0, 200.0]
            with self.assertRaises(RemoteServiceError) as ctx:
                client.list_issues("octo", "hello")

        self.assertIn("deadline", str(ctx.exception))
        session.request.assert_called_once()
        response.json.assert_not_called()
        response.__exit__.assert_called_once()

    def test_config_from_settings(self):
        from types import SimpleNamespace

        from issue_operator.services.github_client import GitHubClientConfig

        cfg = GitHubClientConfig.from_settings(
            SimpleNamespace(
                github_api_url="https://x", github_accept="a/b", github_request_timeout_seconds=3.5
            )
        )
        self.assertEqual(cfg, GitHubClientConfig(base_url="https://x", accept="a/b", timeout_s=3.5))

    def test_context_manager_closes_session(self):
        client, session = _client()

        with client:
            pass

        session.close.assert_called_once_with()


if __name__ == "__main__":
    unittest.main()
