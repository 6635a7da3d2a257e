# tests/test_explainer.py
import logging
from unittest import mock

import pytest
import requests

from data_task_orchestrator.config import ExplainerConfig
from data_task_orchestrator.models import ColumnProfile, ColumnType, DataIssue, IssueSeverity, IssueType
from data_task_orchestrator.services.explainer import (
    IssueExplainer, build_prompt, fallback_explanation, parse_explanation
)

VALID_REPLY = (
    'Sure, here it is: {"whatIsThis": "Half the emails are blank", '
    '"whyProblem": "Customers cannot be contacted.", '
    '"howToFix": ["Backfill from CRM", "Require the field"], '
    '"impact": "Improves completeness by 60%", "priority": "high"} Hope this helps.'
)

def completion_response(content):
    response = mock.Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = {'choices': [{'message': {'content': content}}]}
    return response

class TestIssueExplainer:

    @pytest.fixture
    def config(self):
        return ExplainerConfig(
            API_URL="https://openrouter.example/api/v1/chat/completions",
            API_KEY="test-key",
            MODEL="test-model",
            TEMPERATURE=0.3,
            MAX_TOKENS=500,
            TIMEOUT=5,
            ENABLED=True
        )

    @pytest.fixture
    def issue(self):
        return DataIssue(
            id='email-null-1',
            type=IssueType.MISSING_VALUES,
            severity=IssueSeverity.HIGH,
            column='email',
            description='Column has 60.0% missing values',
            affected_rows=[0, 2, 4]
        )

    @pytest.fixture
    def profile(self):
        return ColumnProfile(
            name='email', type=ColumnType.EMAIL, null_count=3, null_percentage=60.0,
            unique_count=2, unique_percentage=100.0
        )

    def test_remote_explanation(self, config, issue, profile):
        with mock.patch('data_task_orchestrator.services.explainer.requests.post',
                        return_value=completion_response(VALID_REPLY)) as post:
            explanation = IssueExplainer(config).explain(issue, profile, total_rows=5)

        assert explanation.what_is_this == 'Half the emails are blank'
        assert explanation.how_to_fix == ['Backfill from CRM', 'Require the field']
        assert explanation.priority == 'high'

        _, kwargs = post.call_args
        assert kwargs['headers']['Authorization'] == 'Bearer test-key'
        assert kwargs['json']['model'] == 'test-model'
        assert kwargs['timeout'] == 5
        prompt = kwargs['json']['messages'][0]['content']
        assert 'Column: email (Type: email)' in prompt
        assert 'Total Rows: 5' in prompt

    def test_request_failure_falls_back(self, config, issue, profile, caplog):
        with mock.patch('data_task_orchestrator.services.explainer.requests.post',
                        side_effect=requests.ConnectionError("unreachable")):
            with caplog.at_level(logging.WARNING):
                explanation = IssueExplainer(config).explain(issue, profile)

        assert explanation.what_is_this == '3 rows have missing values in this column'
        assert explanation.priority == 'high'
        assert explanation.impact == 'Fixing this will improve data completeness by 60.0%'
        assert 'Remote explanation failed' in caplog.text

    @pytest.mark.parametrize("content", [
        'I cannot help with that.',
        '{"whatIsThis": "x", "whyProblem": "y", "howToFix": ["z"], "impact": "w", "priority": "urgent"}',
        '{"whatIsThis": "x", broken',
        '{not json at all}',
    ])
    def test_unusable_reply_falls_back(self, config, issue, content):
        with mock.patch('data_task_orchestrator.services.explainer.requests.post',
                        return_value=completion_response(content)):
            explanation = IssueExplainer(config).explain(issue)

        assert explanation.what_is_this == '3 rows have missing values in this column'
        assert explanation.priority == 'medium'

    def test_malformed_payload_falls_back(self, config, issue):
        response = mock.Mock()
        response.raise_for_status.return_value = None
        response.json.return_value = {'choices': []}

        with mock.patch('data_task_orchestrator.services.explainer.requests.post', return_value=response):
            explanation = IssueExplainer(config).explain(issue)

        assert explanation.how_to_fix[0] == 'Contact data sources to fill missing values'

    def test_http_error_falls_back(self, config, issue):
        response = mock.Mock()
        response.raise_for_status.side_effect = requests.HTTPError("503 Service Unavailable")

        with mock.patch('data_task_orchestrator.services.explainer.requests.post', return_value=response):
            explanation = IssueExplainer(config).explain(issue)

        assert explanation.what_is_this == '3 rows have missing values in this column'

    def test_no_api_key_skips_request(self, config, issue):
        config.API_KEY = None

        with mock.patch('data_task_orchestrator.services.explainer.requests.post') as post:
            IssueExplainer(config).explain(issue)

        post.assert_not_called()

class TestFallbackExplanations:

    @pytest.mark.parametrize("issue_type, priority", [
        (IssueType.DUPLICATES, 'high'),
        (IssueType.OUTLIERS, 'medium'),
        (IssueType.INCONSISTENT_FORMAT, 'medium'),
        (IssueType.TYPE_MISMATCH, 'high'),
        (IssueType.INVALID_VALUES, 'high'),
        (IssueType.DATA_QUALITY, 'medium'),
        (IssueType.SCHEMA_ISSUE, 'high'),
    ])
    def test_every_issue_type_has_an_explanation(self, issue_type, priority):
        issue = DataIssue(id='i-1', type=issue_type, severity=IssueSeverity.LOW,
                          description='something', affected_rows=[1, 2])
        explanation = fallback_explanation(issue)

        assert explanation.priority == priority
        assert len(explanation.how_to_fix) == 4

    def test_duplicate_count_in_summary(self):
        issue = DataIssue(id='d-1', type=IssueType.DUPLICATES, severity=IssueSeverity.HIGH,
                          description='dupes', affected_rows=[3, 7])
        assert fallback_explanation(issue).what_is_this == '2 duplicate records found in the dataset'

    def test_parse_explanation_extracts_embedded_object(self):
        assert parse_explanation(VALID_REPLY).impact == 'Improves completeness by 60%'

    def test_prompt_without_profile(self):
        issue = DataIssue(id='d-1', type=IssueType.DUPLICATES, severity=IssueSeverity.HIGH,
                          description='dupes', affected_rows=[3])
        prompt = build_prompt(issue)

        assert 'Issue Type: duplicates' in prompt
        assert 'Affected Rows: 1' in prompt
        assert 'Column:' not in prompt
