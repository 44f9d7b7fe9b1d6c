"""
SharePoint User Permissions Audit Package

This package finds every place a user holds permissions in a SharePoint
Online site collection, either directly or through SharePoint group
membership, using the SharePoint REST API.

Modules:
- user_permissions_report: Command line report tool
- walker: Site collection walk with inheritance pruning
- resolver: Role assignment resolution for a single object
- paging: Batched, cursor-based collection fetching
- retry: Exponential backoff for throttled requests
- sharepoint_client: SharePoint REST API client
- report: CSV/JSON report output
- config_utils: Shared configuration utilities
"""

__version__ = "1.0.0"
__author__ = "SharePoint Permission Audit Project"
