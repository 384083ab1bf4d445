import logging
import unittest
from datetime import datetime

from _fakes import FINALIZER, FakeCredentials, FakeGitHubClient, FakeStore, make_reconciler, make_resource

logging.disable(logging.CRITICAL)

DELETED_AT = datetime(2024, 5, 1, 9, 0)


class DeletionProtocolTests(unittest.TestCase):
    def test_closes_issue_then_releases_finalizer(self):
        from issue_operator.services.github_models import RemoteIssue
        from issue_operator.services.reconciler import IssueAction

        resource = make_resource(deletion_timestamp=DELETED_AT)
        store = FakeStore(resource)
        client = FakeGitHubClient(issues=[RemoteIssue(number=7, title="T", body="D")])

        result = make_reconciler(store, client).reconcile("default", "demo")

        self.assertEqual(client.closed, [7])
        self.assertNotIn(FINALIZER, resource.finalizers)
        self.assertEqual(store.updates, 1)
        self.assertIsNone(store.resource)  # removed by the store once unblocked
        self.assertEqual(result.action, IssueAction.CLOSED)
        self.assertIsNone(result.requeue_after)
        self.assertEqual(client.created, [])
        self.assertEqual(store.status_updates, 0)

    def test_keeps_other_finalizers(self):
        from issue_operator.services.github_models import RemoteIssue

        resource = make_resource(deletion_timestamp=DELETED_AT, finalizers=["keep.me", FINALIZER])
        store = FakeStore(resource)
        client = FakeGitHubClient(issues=[RemoteIssue(number=7, title="T", body="D")])

        make_reconciler(store, client).reconcile("default", "demo")

        self.assertEqual(resource.finalizers, ["keep.me"])
        self.assertIs(store.resource, resource)

    def test_missing_remote_issue_keeps_finalizer(self):
        from issue_operator.services.errors import IssueNotFoundError

        resource = make_resource(deletion_timestamp=DELETED_AT)
        store = FakeStore(resource)
        client = FakeGitHubClient(issues=[])

        with self.assertRaises(IssueNotFoundError):
            make_reconciler(store, client).reconcile("default", "demo")

        self.assertEqual(resource.finalizers, [FINALIZER])
        self.assertEqual(store.updates, 0)
        self.assertIs(store.resource, resource)

    def test_retry_after_failed_close_succeeds(self):
        from issue_operator.services.errors import RemoteServiceError
        from issue_operator.services.github_models import RemoteIssue

        resource = make_resource(deletion_timestamp=DELETED_AT)
        store = FakeStore(resource)
        client = FakeGitHubClient(issues=[RemoteIssue(number=7, title="T", body="D")])
        real_close = client.close_issue
        attempts = []

        def flaky_close(owner, repo, desired, *, prefer_number=False):
            attempts.append(1)
            if len(attempts) == 1:
                raise RemoteServiceError("failed with status code: 503", status_code=503)
            return real_close(owner, repo, desired, prefer_number=prefer_number)

        client.close_issue = flaky_close
        reconciler = make_reconciler(store, client)

        with self.assertRaises(RemoteServiceError):
            reconciler.reconcile("default", "demo")
        self.assertEqual(resource.finalizers, [FINALIZER])

        reconciler.reconcile("default", "demo")
        self.assertEqual(client.closed, [7])
        self.assertIsNone(store.resource)

    def test_deletion_without_our_finalizer_exits_cleanly(self):
        from issue_operator.services.reconciler import IssueAction

        credentials = FakeCredentials()
        store = FakeStore(make_resource(deletion_timestamp=DELETED_AT, finalizers=["someone.else"]))
        client = FakeGitHubClient()

        result = make_reconciler(store, client, credentials).reconcile("default", "demo")

        self.assertEqual(result.action, IssueAction.NONE)
        self.assertIsNone(result.requeue_after)
        self.assertEqual(credentials.calls, 0)
        self.assertEqual(client.list_calls, 0)
        self.assertEqual(store.updates, 0)


class LifecyclePhaseTests(unittest.TestCase):
    def test_phases(self):
        from issue_operator.services.reconciler import LifecyclePhase, lifecycle_phase

        self.assertEqual(lifecycle_phase(make_resource(), FINALIZER), LifecyclePhase.ACTIVE)
        self.assertEqual(
            lifecycle_phase(make_resource(deletion_timestamp=DELETED_AT), FINALIZER),
            LifecyclePhase.FINALIZING,
        )
        self.assertEqual(
            lifecycle_phase(make_resource(deletion_timestamp=DELETED_AT, finalizers=[]), FINALIZER),
            LifecyclePhase.PENDING_DELETION,
        )

    def test_finalizer_helpers_report_changes(self):
        from issue_operator.services.reconciler import add_finalizer, remove_finalizer

        resource = make_resource(finalizers=[])
        self.assertTrue(add_finalizer(resource, FINALIZER))
        self.assertFalse(add_finalizer(resource, FINALIZER))
        self.assertEqual(resource.finalizers, [FINALIZER])
        self.assertTrue(remove_finalizer(resource, FINALIZER))
        self.assertFalse(remove_finalizer(resource, FINALIZER))
        self.assertEqual(resource.finalizers, [])


if __name__ == "__main__":
    unittest.main()
