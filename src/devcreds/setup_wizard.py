# Interactive Setup Flow
#
# Walks the user through the master passphrase and each credential
# category (GitHub, cloud providers, databases, API keys). Blank answers
# are skipped, so re-running the wizard only changes what the user types.

import getpass
import logging
from typing import Callable, List, Optional, Tuple

from .materializer import EnvironmentMaterializer
from .vault import (
    CorruptCredential,
    CredentialStatus,
    CredentialStore,
    IndexEntry,
    PassphraseMismatch,
    VerifyResult,
    check_passphrase_strength,
    get_spec,
)
from .vault.catalog import format_timestamp

logger = logging.getLogger(__name__)

PromptFn = Callable[[str], str]
OutputFn = Callable[[str], None]

STATUS_ICONS = {
    CredentialStatus.PRESENT: "✅",
    CredentialStatus.ABSENT: "ℹ️",
    CredentialStatus.CORRUPT: "❌",
}


def render_catalog(entries: List[IndexEntry]) -> List[str]:
    """Table lines for the catalog (never values)."""
    if not entries:
        return ["No credentials configured yet."]
    lines = [
        "Credential            | Description                    | Last Updated",
        "----------------------|--------------------------------|---------------------",
    ]
    for entry in entries:
        lines.append(
            f"{entry.key:<21} | {entry.description:<30} | {format_timestamp(entry.updated)}"
        )
    return lines


def render_verify(report: List[VerifyResult]) -> List[str]:
    """One line per key with its presence status."""
    lines = []
    for result in report:
        spec = get_spec(result.key)
        label = spec.description if spec else result.key
        icon = STATUS_ICONS[result.status]
        if result.status is CredentialStatus.PRESENT:
            lines.append(f"{icon} {label} configured")
        elif result.status is CredentialStatus.CORRUPT:
            lines.append(f"{icon} {label} is corrupt or sealed under another passphrase")
        else:
            lines.append(f"{icon} {label} not configured")
    return lines


class SetupWizard:
    """Interactive credential walkthrough."""

    def __init__(
        self,
        store: CredentialStore,
        input_fn: PromptFn = input,
        secret_fn: PromptFn = getpass.getpass,
        output: OutputFn = print,
    ):
        self.store = store
        self.input_fn = input_fn
        self.secret_fn = secret_fn
        self.output = output
        self.failures: List[str] = []

    # ── Prompt helpers ──────────────────────────────────────────────

    def read_with_default(self, prompt: str, default: Optional[str]) -> str:
        if default:
            value = self.input_fn(f"{prompt} [{default}]: ").strip()
        else:
            value = self.input_fn(f"{prompt}: ").strip()
        return value or (default or "")

    def read_secret(self, prompt: str) -> str:
        return self.secret_fn(prompt).strip()

    def current(self, key: str) -> Optional[str]:
        """Existing value for use as a prompt default; corrupt reads as unset."""
        try:
            return self.store.load(key)
        except CorruptCredential:
            self.output(f"⚠️ Existing {key} could not be decrypted; it will be replaced if you enter a value")
            return None

    def save(self, items: List[Tuple[str, str]]) -> None:
        """Store ``(key, value)`` pairs; one failure does not stop the others."""
        batch = []
        for key, value in items:
            spec = get_spec(key)
            batch.append((key, value, spec.description if spec else key))

        results = self.store.store_many(batch)
        for key, value, description in batch:
            error = results.get(key)
            if error is not None:
                self.failures.append(key)
                self.output(f"❌ Failed: {description} ({error})")
            elif value:
                self.output(f"✅ Stored: {description}")
            else:
                self.output(f"⚠️ Skipped: {description} (empty value)")

    # ── Steps ───────────────────────────────────────────────────────

    def setup_master_passphrase(self) -> None:
        self.output("🔐 Master Passphrase Setup")
        self.output("==========================")

        if self.store.is_initialized:
            self.output("✅ Master passphrase already configured")
            passphrase = self.store.config.passphrase or self.secret_fn("Enter master passphrase: ")
            self.store.open(passphrase)
            return

        self.output("This passphrase will be used to encrypt your stored credentials.")
        first = self.secret_fn("Enter master passphrase: ")
        second = self.secret_fn("Confirm master passphrase: ")
        if first != second:
            raise PassphraseMismatch("Passphrases don't match")

        strong, advice = check_passphrase_strength(first)
        if not strong:
            self.output(f"⚠️ Weak passphrase: {advice}")

        self.store.open(first, second)
        self.output("✅ Master passphrase configured")

    def setup_github(self) -> None:
        self.output("🐙 GitHub Configuration")
        self.output("=======================")
        self.output("Create a token at: https://github.com/settings/personal-access-tokens/new")
        self.output("Required scopes: repo, read:org, workflow, admin:public_key")

        token = self.read_secret("GitHub Personal Access Token (blank to keep): ")
        username = self.read_with_default("GitHub Username", self.current("github_username"))
        org = self.read_with_default("Default GitHub Organization", self.current("github_default_org"))
        self.save([
            ("github_token", token),
            ("github_username", username),
            ("github_default_org", org),
        ])

    def setup_cloud_providers(self) -> None:
        self.output("☁️ Cloud Provider Configuration")
        self.output("==============================")

        self.output("📋 AWS Credentials (Optional)")
        access_key = self.read_with_default("AWS Access Key ID", self.current("aws_access_key_id"))
        if access_key:
            secret = self.read_secret("AWS Secret Access Key: ")
            region = self.read_with_default(
                "AWS Default Region",
                self.current("aws_region") or get_spec("aws_region").default,
            )
            self.save([
                ("aws_access_key_id", access_key),
                ("aws_secret_access_key", secret),
                ("aws_region", region),
            ])

        self.output("📋 Google Cloud Credentials (Optional)")
        project = self.read_with_default("GCP Project ID", self.current("gcp_project_id"))
        if project:
            self.save([("gcp_project_id", project)])
            self.output("Note: Use 'gcloud auth login' for authentication")

        self.output("📋 Azure Credentials (Optional)")
        subscription = self.read_with_default("Azure Subscription ID", self.current("azure_subscription_id"))
        if subscription:
            self.save([("azure_subscription_id", subscription)])
            self.output("Note: Use 'az login' for authentication")

    def setup_databases(self) -> None:
        self.output("🗄️ Database Configuration")
        self.output("=========================")
        items = []
        for key in ("postgresql_url", "redis_url", "mongodb_url"):
            spec = get_spec(key)
            value = self.read_with_default(spec.description, self.current(key) or spec.default)
            items.append((key, value))
        self.save(items)

    def setup_api_keys(self) -> None:
        self.output("🔑 API Keys Configuration")
        self.output("=========================")
        items = []
        for key in ("openai_api_key", "anthropic_api_key"):
            spec = get_spec(key)
            if self.current(key):
                self.output(f"✅ {spec.description} already configured")
                continue
            items.append((key, self.read_secret(f"{spec.description}: ")))

        docker_user = self.read_with_default("Docker Hub Username", self.current("docker_username"))
        if docker_user:
            items.append(("docker_username", docker_user))
            items.append(("docker_password", self.read_secret("Docker Hub Password/Token: ")))
        self.save(items)

    def write_environment_descriptor(self) -> None:
        path = EnvironmentMaterializer(self.store).write_descriptor(self.store.config.descriptor_path)
        self.output(f"✅ Environment descriptor written to {path}")

    def run(self) -> int:
        """Full walkthrough. Returns the number of credentials that failed to store."""
        self.setup_master_passphrase()
        self.setup_github()
        self.setup_cloud_providers()
        self.setup_databases()
        self.setup_api_keys()
        self.write_environment_descriptor()

        self.output("🎉 Credential setup complete!")
        self.output("📋 Summary:")
        for line in render_catalog(self.store.list()):
            self.output(line)
        return len(self.failures)
