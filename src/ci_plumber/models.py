from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from ci_plumber.duration import Duration


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class PipelineKind(StrEnum):
    """How a job is triggered."""

    # Runs on unmerged pull requests.
    presubmit = "presubmit"
    # Runs on each new commit.
    postsubmit = "postsubmit"
    # Runs on a time basis, unrelated to git changes.
    periodic = "periodic"
    # Tests multiple unmerged pull requests at the same time.
    batch = "batch"


class Pull(_Record):
    """A pull request at a particular point in time."""

    number: int = Field(strict=True)
    author: str
    sha: str
    title: str = ""

    # A git ref that can be checked out for the change, for example
    # "pull/123/head" on GitHub or "refs/changes/00/123/1" on Gerrit.
    ref: str = ""
    link: str = ""
    commit_link: str = ""
    author_link: str = ""


class Refs(_Record):
    """The code under test."""

    # e.g. kubernetes or k8s.io
    org: str
    # e.g. test-infra
    repo: str
    repo_link: str = ""

    base_ref: str = ""
    base_sha: str = ""
    base_link: str = ""

    pulls: tuple[Pull, ...] = ()

    # Location under <root-dir>/src the repository is cloned to.
    path_alias: str = ""
    clone_uri: str = ""
    # Callers treat submodules as skipped by default; no default is applied here.
    skip_submodules: bool = Field(default=False, strict=True)
    # Zero means a full clone.
    clone_depth: int = Field(default=0, strict=True)

    @property
    def effective_clone_uri(self) -> str:
        return self.clone_uri or f"https://github.com/{self.org}/{self.repo}.git"

    @property
    def effective_path_alias(self) -> str:
        return self.path_alias or f"github.com/{self.org}/{self.repo}"

    def __str__(self) -> str:
        """Summarize as ``base_ref:base_sha,number:sha[:ref],...``."""
        if self.base_sha:
            parts = [f"{self.base_ref}:{self.base_sha}"]
        else:
            parts = [self.base_ref]

        for pull in self.pulls:
            ref = f"{pull.number}:{pull.sha}"
            if pull.ref:
                ref = f"{ref}:{pull.ref}"
            parts.append(ref)

        return ",".join(parts)


class DecorationConfig(_Record):
    """
    How to augment the pods of a job.

    Timeouts and credentials are only carried here; they are enforced by the
    pod utilities. See ``ci_plumber.validation`` for checking a config.
    """

    # How long the pod utilities wait before aborting a job with SIGINT.
    timeout: Duration | None = None
    # How long the pod utilities wait after SIGINT before sending SIGKILL.
    grace_period: Duration | None = None

    gcs_credentials_secret: str = ""
    ssh_key_secrets: tuple[str, ...] = ()
    # Create with ssh-keyscan [-t rsa] host
    ssh_host_fingerprints: tuple[str, ...] = ()
    # None inherits the default.
    skip_cloning: bool | None = Field(default=None, strict=True)
    cookiefile_secret: str = ""

    def apply_default(self, default: "DecorationConfig | None") -> "DecorationConfig":
        """Return a copy with every unset field taken from ``default``."""
        if default is None:
            return self

        update = {}
        for name in type(self).model_fields:
            value = getattr(self, name)
            if value is None or value == "" or value == ():
                update[name] = getattr(default, name)

        return self.model_copy(update=update)

    @staticmethod
    def merge(
        config: "DecorationConfig | None", default: "DecorationConfig | None"
    ) -> "DecorationConfig | None":
        if config is None:
            return default
        return config.apply_default(default)


class PipelineOptionsSpec(_Record):
    """A request to run one job against some code."""

    # Kept verbatim so unknown kinds survive; see ``kind``.
    type: str = ""
    # Where to create pods and resources.
    namespace: str = ""
    job: str = ""
    refs: Refs | None = None
    # Name of the status context reported back to the forge.
    context: str = ""
    # What a user writes on their pull request to trigger this job again.
    rerun_command: str = ""
    # Zero means unbounded.
    max_concurrency: int = Field(default=0, strict=True, ge=0)
    decoration_config: DecorationConfig | None = None

    @property
    def kind(self) -> PipelineKind | None:
        try:
            return PipelineKind(self.type)
        except ValueError:
            return None


class ObjectMeta(_Record):
    name: str = ""
    namespace: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


class PipelineOptions(_Record):
    api_version: str = Field(default="", alias="apiVersion")
    kind: str = ""
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: PipelineOptionsSpec = Field(default_factory=PipelineOptionsSpec)


class PipelineOptionsList(_Record):
    items: tuple[PipelineOptions, ...] = ()
