"""Per-project Jira credentials: configuration, storage and self-test."""
import logging
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ConflictError, NotConfiguredError, NotFoundError, ValidationError
from app.crud.group import project as project_crud
from app.crud.integration import jira_integration
from app.integrations.jira import JiraClient, JiraIntegrationError, JiraProject
from app.models.integration import JiraIntegration, SyncStatus
from app.schemas.jira import JiraConnectionTestResult, JiraIntegrationConfig
from app.security.encryption import DecryptionError, EncryptionService, get_protector

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, str, str], JiraClient]


class JiraVaultService:
    """Stores Jira credentials encrypted and hands out clients built from them.

    The API token is encrypted before every write and decrypted only inside
    :meth:`client_for`, right before an outbound call.
    """

    def __init__(
        self,
        protector: Optional[EncryptionService] = None,
        client_factory: ClientFactory = JiraClient,
    ):
        self._protector = protector
        self.client_factory = client_factory

    @property
    def protector(self) -> EncryptionService:
        if self._protector is None:
            self._protector = get_protector(settings.JIRA_TOKEN_PURPOSE)
        return self._protector

    def client_for(self, integration: JiraIntegration) -> JiraClient:
        """Build a client from stored credentials."""
        api_token = self.protector.decrypt_text(integration.api_token_encrypted)
        return self.client_factory(integration.jira_url, integration.jira_email, api_token)

    async def _verify(self, cfg: JiraIntegrationConfig, connect_error: str) -> JiraProject:
        client = self.client_factory(cfg.jira_url, cfg.jira_email, cfg.api_token)
        if not await client.test_connection():
            raise ValidationError(connect_error)
        try:
            return await client.get_project(cfg.project_key)
        except JiraIntegrationError as exc:
            raise ValidationError(f"Failed to get Jira project: {exc}") from exc

    async def configure(
        self,
        db: AsyncSession,
        project_id: UUID,
        cfg: JiraIntegrationConfig,
    ) -> JiraIntegration:
        """Create the integration for a project after checking the credentials work."""
        if await project_crud.get(db, project_id) is None:
            raise NotFoundError("Project not found")
        if await jira_integration.get_by_project(db, project_id=project_id) is not None:
            raise ConflictError(
                "Jira integration already exists for this project. Use update endpoint instead."
            )

        jira_project = await self._verify(
            cfg, "Failed to connect to Jira. Please check your credentials and URL."
        )
        integration = await jira_integration.create(
            db,
            obj_in={
                "project_id": project_id,
                "jira_url": cfg.jira_url.rstrip("/"),
                "jira_email": cfg.jira_email,
                "api_token_encrypted": self.protector.encrypt_text(cfg.api_token),
                "project_key": cfg.project_key,
                "sync_status": SyncStatus.PENDING,
            },
        )
        logger.info(
            "Configured Jira integration for project %s (%s, %s)",
            project_id,
            integration.jira_url,
            jira_project.key,
        )
        return integration

    async def update(
        self,
        db: AsyncSession,
        project_id: UUID,
        cfg: JiraIntegrationConfig,
    ) -> JiraIntegration:
        """Replace stored credentials. Nothing is written unless they work."""
        integration = await self.get(db, project_id)
        await self._verify(cfg, "Failed to connect to Jira with new credentials")

        integration = await jira_integration.update(
            db,
            db_obj=integration,
            obj_in={
                "jira_url": cfg.jira_url.rstrip("/"),
                "jira_email": cfg.jira_email,
                "api_token_encrypted": self.protector.encrypt_text(cfg.api_token),
                "project_key": cfg.project_key,
            },
        )
        logger.info("Updated Jira integration for project %s", project_id)
        return integration

    async def get(self, db: AsyncSession, project_id: UUID) -> JiraIntegration:
        integration = await jira_integration.get_by_project(db, project_id=project_id)
        if integration is None:
            raise NotConfiguredError()
        return integration

    async def delete(self, db: AsyncSession, project_id: UUID) -> None:
        integration = await self.get(db, project_id)
        await jira_integration.remove(db, id=integration.id)
        logger.info("Deleted Jira integration for project %s", project_id)

    async def list_all(self, db: AsyncSession) -> List[JiraIntegration]:
        return await jira_integration.get_all(db)

    async def test_stored_connection(
        self,
        db: AsyncSession,
        project_id: UUID,
    ) -> JiraConnectionTestResult:
        """Check the stored credentials. Only a missing integration raises."""
        integration = await self.get(db, project_id)
        tested_at = datetime.utcnow()

        try:
            client = self.client_for(integration)
        except DecryptionError:
            logger.error("Stored Jira token for project %s cannot be decrypted", project_id)
            return JiraConnectionTestResult(
                is_connected=False,
                message="Stored API token cannot be decrypted. Update the integration credentials.",
                tested_at=tested_at,
            )

        if not await client.test_connection():
            return JiraConnectionTestResult(
                is_connected=False,
                message="Failed to connect to Jira. Please check your credentials.",
                tested_at=tested_at,
            )

        try:
            jira_project = await client.get_project(integration.project_key)
        except JiraIntegrationError as exc:
            return JiraConnectionTestResult(
                is_connected=True,
                message=f"Connected to Jira but failed to get project: {exc}",
                tested_at=tested_at,
            )

        return JiraConnectionTestResult(
            is_connected=True,
            message=f"Successfully connected to Jira project: {jira_project.name}",
            jira_project_name=jira_project.name,
            jira_project_key=jira_project.key,
            tested_at=tested_at,
        )


jira_vault_service = JiraVaultService()
