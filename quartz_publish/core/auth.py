"""Token authentication for the GitHub REST API."""

import os
import re

from dotenv import load_dotenv

REPOSITORY_PATTERN = re.compile(
    r"^(?:https?://github\.com/|git@github\.com:)?(?P<owner>[\w.-]+)/(?P<repo>[\w.-]+?)(?:\.git)?/?$"
)


def parse_repository(value: str) -> tuple[str, str]:
    """Split ``owner/repo`` or a GitHub URL into owner and repository name.

    Raises:
        ValueError: If the value is not a recognizable repository reference
    """
    match = REPOSITORY_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid repository: {value!r}")
    return match.group("owner"), match.group("repo")


class GitHubAuth:
    """Holds the GitHub token and target repository."""

    DEFAULT_API_URL = "https://api.github.com"

    def __init__(
        self,
        token: str | None = None,
        repository: str | None = None,
        branch: str | None = None,
        api_url: str | None = None,
    ) -> None:
        """Initialize authentication with credentials.

        Args:
            token: Personal access token (or load from GITHUB_TOKEN env)
            repository: owner/repo or URL (or load from GITHUB_REPOSITORY env)
            branch: Branch to publish to (or load from GITHUB_BRANCH env)
            api_url: API base URL (or load from GITHUB_API_URL env)
        """
        load_dotenv()

        self.token = token or os.getenv("GITHUB_TOKEN", "")
        self.repository = repository or os.getenv("GITHUB_REPOSITORY", "")
        self.branch = branch or os.getenv("GITHUB_BRANCH", "") or "main"
        self.api_url = (api_url or os.getenv("GITHUB_API_URL", self.DEFAULT_API_URL)).rstrip("/")

        if not self.token:
            raise ValueError(
                "Missing GitHub credentials. Set the GITHUB_TOKEN environment "
                "variable or pass a token directly."
            )
        if not self.repository:
            raise ValueError(
                "Missing GitHub repository. Set repository in the config file "
                "or the GITHUB_REPOSITORY environment variable."
            )

        self.owner, self.repo = parse_repository(self.repository)

    def get_headers(self) -> dict[str, str]:
        """Generate headers for an API request."""
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def get_full_url(self, path: str) -> str:
        """Build full URL from base URL and path."""
        return f"{self.api_url}{path}"

    def verify_credentials(self) -> bool:
        """Verify that credentials are set (does not test API connectivity)."""
        return bool(self.token and self.owner and self.repo)
