"""Tests for the queue provisioner."""

import json
from unittest import TestCase
from unittest.mock import MagicMock

from purge_bridge.errors import ProvisioningError, QueueNotFoundError, QueueServiceError
from purge_bridge.provisioner import QueueProvisioner, parse_arn, queue_arn
from purge_bridge.queue_model_dto import QueueDescriptor

TOPIC_ARN = "arn:aws:sns:us-east-1:123456789012:content-updates"
QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/purge-queue"


class FakeQueueRepository:
    """Queue backend keeping queues in a dict; created queues become visible after `lag` lookups."""

    def __init__(self, lag: int = 0):
        self.queues: dict[str, str] = {}
        self.pending: dict[str, int] = {}
        self.lag = lag
        self.create_calls: list[tuple[str, dict]] = []

    def get_queue_url(self, queue_name):
        if self.pending.get(queue_name, 0) > 0:
            self.pending[queue_name] -= 1
            raise QueueNotFoundError("Resolve", "QueueDoesNotExist")
        if queue_name not in self.queues:
            raise QueueNotFoundError("Resolve", "QueueDoesNotExist")
        return self.queues[queue_name]

    def create_queue(self, queue_name, attributes=None):
        self.create_calls.append((queue_name, attributes))
        self.queues[queue_name] = f"https://sqs.us-east-1.amazonaws.com/123456789012/{queue_name}"
        self.pending[queue_name] = self.lag
        return self.queues[queue_name]


class TestArnHelpers(TestCase):
    def test_parse_arn(self):
        parts = parse_arn(TOPIC_ARN)
        self.assertEqual(parts["account"], "123456789012")
        self.assertEqual(parts["region"], "us-east-1")
        self.assertEqual(parts["resource"], "content-updates")

    def test_parse_arn_invalid(self):
        with self.assertRaises(ValueError):
            parse_arn("not-an-arn")

    def test_queue_arn(self):
        self.assertEqual(queue_arn("eu-west-1", "42", "q"), "arn:aws:sqs:eu-west-1:42:q")


class TestQueueProvisioner(TestCase):
    def setUp(self):
        self.sleeps = []

    def provisioner(self, repo, **kwargs):
        kwargs.setdefault("region", "us-east-1")
        return QueueProvisioner(repo, sleep=self.sleeps.append, **kwargs)

    def test_existing_queue_is_resolved_without_create(self):
        repo = FakeQueueRepository()
        repo.queues["purge-queue"] = QUEUE_URL
        descriptor = self.provisioner(repo).resolve_or_create_queue("purge-queue", TOPIC_ARN)
        self.assertEqual(descriptor.url, QUEUE_URL)
        self.assertTrue(descriptor.owned)
        self.assertEqual(repo.create_calls, [])

    def test_missing_queue_is_created_then_resolved(self):
        repo = FakeQueueRepository()
        descriptor = self.provisioner(repo).resolve_or_create_queue("purge-queue", TOPIC_ARN)
        self.assertEqual(descriptor.url, QUEUE_URL)
        self.assertEqual(len(repo.create_calls), 1)

    def test_resolve_or_create_is_idempotent(self):
        repo = FakeQueueRepository()
        provisioner = self.provisioner(repo)
        first = provisioner.resolve_or_create_queue("purge-queue", TOPIC_ARN)
        second = provisioner.resolve_or_create_queue("purge-queue", TOPIC_ARN)
        self.assertEqual(first.url, second.url)
        self.assertEqual(len(repo.create_calls), 1)

    def test_created_queue_attributes_and_policy(self):
        repo = FakeQueueRepository()
        self.provisioner(repo, retention_seconds=3600).resolve_or_create_queue("purge-queue", TOPIC_ARN)
        _, attributes = repo.create_calls[0]
        self.assertEqual(attributes["DelaySeconds"], "0")
        self.assertEqual(attributes["MessageRetentionPeriod"], "3600")

        policy = json.loads(attributes["Policy"])
        resource = "arn:aws:sqs:us-east-1:123456789012:purge-queue"
        self.assertEqual(policy["Version"], "2012-10-17")
        self.assertEqual(policy["Id"], f"{resource}/SQSDefaultPolicy")
        statement = policy["Statement"][0]
        self.assertEqual(statement["Effect"], "Allow")
        self.assertEqual(statement["Action"], "SQS:SendMessage")
        self.assertEqual(statement["Principal"], {"AWS": "*"})
        self.assertEqual(statement["Resource"], resource)
        self.assertEqual(statement["Condition"], {"ArnEquals": {"aws:SourceArn": TOPIC_ARN}})
        self.assertRegex(statement["Sid"], r"^Sid\d+$")

    def test_configured_account_id_wins_over_topic(self):
        repo = FakeQueueRepository()
        self.provisioner(repo, account_id="999").resolve_or_create_queue("purge-queue", TOPIC_ARN)
        policy = json.loads(repo.create_calls[0][1]["Policy"])
        self.assertEqual(policy["Statement"][0]["Resource"], "arn:aws:sqs:us-east-1:999:purge-queue")

    def test_lagging_queue_is_retried_with_delay(self):
        repo = FakeQueueRepository(lag=2)
        descriptor = self.provisioner(repo, max_attempts=5, retry_delay=0.25).resolve_or_create_queue(
            "purge-queue", TOPIC_ARN
        )
        self.assertEqual(descriptor.url, QUEUE_URL)
        self.assertEqual(len(repo.create_calls), 1)
        self.assertEqual(self.sleeps, [0.25, 0.25])

    def test_retry_is_bounded(self):
        repo = FakeQueueRepository(lag=100)
        with self.assertRaises(ProvisioningError) as ctx:
            self.provisioner(repo, max_attempts=3).resolve_or_create_queue("purge-queue", TOPIC_ARN)
        self.assertIn("after 3 attempts", str(ctx.exception))
        self.assertEqual(len(repo.create_calls), 1)

    def test_permanent_resolve_error_is_fatal(self):
        repo = MagicMock()
        repo.get_queue_url.side_effect = QueueServiceError("Resolve", "AccessDenied")
        with self.assertRaises(ProvisioningError):
            self.provisioner(repo).resolve_or_create_queue("purge-queue", TOPIC_ARN)
        repo.create_queue.assert_not_called()
        self.assertEqual(repo.get_queue_url.call_count, 1)

    def test_retryable_resolve_error_is_retried(self):
        repo = MagicMock()
        repo.get_queue_url.side_effect = [QueueServiceError("Resolve", "Throttling", retryable=True), QUEUE_URL]
        descriptor = self.provisioner(repo).resolve_or_create_queue("purge-queue", TOPIC_ARN)
        self.assertEqual(descriptor.url, QUEUE_URL)
        self.assertEqual(len(self.sleeps), 1)

    def test_create_failure_is_fatal(self):
        repo = MagicMock()
        repo.get_queue_url.side_effect = QueueNotFoundError("Resolve", "QueueDoesNotExist")
        repo.create_queue.side_effect = QueueServiceError("Create", "InvalidAttributeValue")
        with self.assertRaises(ProvisioningError) as ctx:
            self.provisioner(repo).resolve_or_create_queue("purge-queue", TOPIC_ARN)
        self.assertIn("Unable to create queue", str(ctx.exception))

    def test_missing_account_and_bad_topic_arn(self):
        repo = FakeQueueRepository()
        with self.assertRaises(ProvisioningError):
            self.provisioner(repo).resolve_or_create_queue("purge-queue", "content-updates")

    def test_resolve_arn(self):
        repo = MagicMock()
        repo.get_queue_arn.return_value = "arn:aws:sqs:us-east-1:123456789012:purge-queue"
        descriptor = QueueDescriptor(name="purge-queue", url=QUEUE_URL)
        resolved = self.provisioner(repo).resolve_arn(descriptor)
        self.assertEqual(resolved.arn, "arn:aws:sqs:us-east-1:123456789012:purge-queue")
        self.assertEqual(resolved.url, QUEUE_URL)
        self.assertIsNone(descriptor.arn)

    def test_resolve_arn_missing_is_fatal(self):
        repo = MagicMock()
        repo.get_queue_arn.return_value = None
        with self.assertRaises(ProvisioningError):
            self.provisioner(repo).resolve_arn(QueueDescriptor(url=QUEUE_URL))

    def test_resolve_arn_service_error_is_fatal(self):
        repo = MagicMock()
        repo.get_queue_arn.side_effect = QueueServiceError("Attributes", "AccessDenied")
        with self.assertRaises(ProvisioningError):
            self.provisioner(repo).resolve_arn(QueueDescriptor(url=QUEUE_URL))
