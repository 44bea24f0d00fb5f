from typing import AsyncIterator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from qmsflow.db.session import get_session
from qmsflow.services.notification_service import NotificationCenter, notification_center
from qmsflow.services.rule_store import RuleStore, default_rule_store
from qmsflow.services.service_factory import AutomationServices, build_session_services
from qmsflow.services.workflow_store import WorkflowTemplateStore, default_workflow_store


async def get_db() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


def get_notification_center() -> NotificationCenter:
    return notification_center


def get_rule_store() -> RuleStore:
    return default_rule_store


def get_workflow_store() -> WorkflowTemplateStore:
    return default_workflow_store


async def get_services(
    session: AsyncSession = Depends(get_db),
    rules: RuleStore = Depends(get_rule_store),
    templates: WorkflowTemplateStore = Depends(get_workflow_store),
    notifier: NotificationCenter = Depends(get_notification_center),
) -> AutomationServices:
    return build_session_services(session, rules=rules, templates=templates, notifier=notifier)
