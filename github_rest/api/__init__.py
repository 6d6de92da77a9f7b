"""Resource-specific GitHub API services.

Each module in this package owns:
- the endpoint paths for one resource (built through GitHubAPIClient.new_request)
- the response DTOs for that resource
- the service class exposing one method per endpoint
"""
