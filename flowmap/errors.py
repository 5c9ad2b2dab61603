"""Exception hierarchy shared by the pipelines and the GitHub client.

Every error raised on purpose derives from :class:`FlowMapError`.  The *kind*
classes (:class:`InvalidUrlError`, :class:`NotFoundError`,
:class:`RateLimitError`, :class:`PipelineTimeoutError`) let the API layer map
a failure to a status code without caring which pipeline raised it.
"""

from typing import Optional


class FlowMapError(Exception):
    """Base class for all flowmap errors."""


# ---------------------------------------------------------------------------
# Kinds
# ---------------------------------------------------------------------------

class InvalidUrlError(FlowMapError, ValueError):
    """The seed or repository URL is malformed; raised before any I/O."""


class NotFoundError(FlowMapError):
    """The target host or repository does not exist or cannot be reached."""


class RateLimitError(FlowMapError):
    """A quota-limited upstream refused the request."""


class PipelineTimeoutError(FlowMapError, TimeoutError):
    """The crawl or discovery budget was exceeded."""


# ---------------------------------------------------------------------------
# Pipelines
# ---------------------------------------------------------------------------

class CrawlError(FlowMapError):
    """The website crawl could not produce a result."""


class SiteUnreachableError(CrawlError, NotFoundError):
    pass


class CrawlTimeoutError(CrawlError, PipelineTimeoutError):
    pass


class AnalysisError(FlowMapError):
    """The repository analysis could not produce a result."""


class RepositoryNotFoundError(AnalysisError, NotFoundError):
    pass


class AnalysisTimeoutError(AnalysisError, PipelineTimeoutError):
    pass


class AnalysisRateLimitError(AnalysisError, RateLimitError):
    pass


class ScreenshotError(FlowMapError):
    """The browser could not be started or driven to capture screenshots."""


# ---------------------------------------------------------------------------
# GitHub
# ---------------------------------------------------------------------------

class GitHubError(FlowMapError):
    """A GitHub REST call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GitHubNotFoundError(GitHubError, NotFoundError):
    pass


class GitHubRateLimitError(GitHubError, RateLimitError):
    pass
