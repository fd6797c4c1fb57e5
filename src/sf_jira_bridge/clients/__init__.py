"""REST clients for the issue tracker (Jira) and the CRM (Salesforce)."""

from .base import IssueClient, RecordClient
from .jira import JiraIssueClient
from .salesforce import SalesforceRecordClient

__all__ = ["IssueClient", "RecordClient", "JiraIssueClient", "SalesforceRecordClient"]
