"""Email account repository tests against an in-memory SQLite schema."""

import pytest

from talentmail.application.dtos.email_account import EmailAccountCreate
from talentmail.domain.enums import EmailAccountStatus, EmailAccountType
from talentmail.domain.exceptions import ResourceNotFoundException
from talentmail.infrastructure.persistence.repositories import (
    EmailAccountRepository,
    EmailAccountSecretRepository,
    SqlCredentialStore,
)

COMPANY = "company-1"


def _create(account_type=EmailAccountType.ESP, **fields) -> EmailAccountCreate:
    return EmailAccountCreate(
        company_id=fields.pop("company_id", COMPANY),
        type=account_type,
        from_address=fields.pop("from_address", "jobs@acme.example"),
        **fields,
    )


async def test_create_and_get(db_session) -> None:
    repo = EmailAccountRepository(db_session)
    created = await repo.create_email_account(
        _create(from_address="  jobs@acme.example ", from_name="Acme", capabilities={"supportsWebhooks": True})
    )
    assert created.id
    assert created.from_address == "jobs@acme.example"
    assert created.type is EmailAccountType.ESP
    assert created.status is EmailAccountStatus.ACTIVE
    assert created.capabilities == {"supportsWebhooks": True}

    assert (await repo.get_by_id(created.id)).id == created.id
    assert await repo.get_by_id_and_company(created.id, COMPANY) is not None
    assert await repo.get_by_id_and_company(created.id, "company-2") is None


async def test_default_and_first_active_lookup(db_session) -> None:
    repo = EmailAccountRepository(db_session)
    smtp = await repo.create_email_account(_create(EmailAccountType.SMTP))
    esp = await repo.create_email_account(_create(EmailAccountType.ESP))
    await repo.create_email_account(
        _create(EmailAccountType.GMAIL_OAUTH, is_default=True, status=EmailAccountStatus.DISABLED)
    )

    assert await repo.find_default_active(COMPANY) is None
    assert (await repo.find_first_active(COMPANY, EmailAccountType.ESP)).id == esp.id
    assert (await repo.find_first_active(COMPANY, EmailAccountType.SMTP)).id == smtp.id
    assert await repo.find_first_active(COMPANY, EmailAccountType.MICROSOFT_OAUTH) is None
    assert await repo.find_first_active("company-2") is None

    await repo.update_email_account(smtp.id, is_default=True)
    assert (await repo.find_default_active(COMPANY)).id == smtp.id


async def test_clear_defaults_except_one(db_session) -> None:
    repo = EmailAccountRepository(db_session)
    a = await repo.create_email_account(_create(is_default=True))
    b = await repo.create_email_account(_create(is_default=True))
    other = await repo.create_email_account(_create(company_id="company-2", is_default=True))

    cleared = await repo.clear_defaults(COMPANY, except_id=b.id)

    assert cleared == 1
    assert (await repo.get_by_id(a.id)).is_default is False
    assert (await repo.get_by_id(b.id)).is_default is True
    assert (await repo.get_by_id(other.id)).is_default is True


async def test_update_rejects_unknown_fields(db_session) -> None:
    repo = EmailAccountRepository(db_session)
    account = await repo.create_email_account(_create())
    with pytest.raises(ValueError):
        await repo.update_email_account(account.id, company_id="company-2")
    with pytest.raises(ResourceNotFoundException):
        await repo.update_email_account("missing", display_name="x")


async def test_update_converts_enums(db_session) -> None:
    repo = EmailAccountRepository(db_session)
    account = await repo.create_email_account(_create())
    updated = await repo.update_email_account(
        account.id, status=EmailAccountStatus.ERROR, error_message="revoked"
    )
    assert updated.status is EmailAccountStatus.ERROR
    assert updated.error_message == "revoked"


async def test_list_and_delete(db_session) -> None:
    repo = EmailAccountRepository(db_session)
    a = await repo.create_email_account(_create())
    await repo.create_email_account(_create(company_id="company-2"))
    assert [x.id for x in await repo.list_by_company(COMPANY)] == [a.id]
    await repo.delete_email_account(a.id)
    assert await repo.list_by_company(COMPANY) == []
    with pytest.raises(ResourceNotFoundException):
        await repo.delete_email_account(a.id)


async def test_list_puts_default_account_first(db_session) -> None:
    repo = EmailAccountRepository(db_session)
    default = await repo.create_email_account(_create(is_default=True))
    other = await repo.create_email_account(_create(EmailAccountType.SMTP))
    listed = [x.id for x in await repo.list_by_company(COMPANY)]
    assert listed == [default.id, other.id]


async def test_secret_upsert_and_delete(db_session) -> None:
    account = await EmailAccountRepository(db_session).create_email_account(
        _create(EmailAccountType.SMTP)
    )
    secrets = EmailAccountSecretRepository(db_session)
    assert await secrets.get_encrypted(account.id) is None
    await secrets.upsert(account.id, "blob-1")
    await secrets.upsert(account.id, "blob-2")
    assert await secrets.get_encrypted(account.id) == "blob-2"
    await secrets.delete_by_account(account.id)
    assert await secrets.get_encrypted(account.id) is None


async def test_credential_store_read_modify_write(session_factory) -> None:
    """update_encrypted commits on its own transaction."""
    async with session_factory() as session:
        async with session.begin():
            account = await EmailAccountRepository(session).create_email_account(
                _create(EmailAccountType.GMAIL_OAUTH)
            )
            await EmailAccountSecretRepository(session).upsert(account.id, "v1")

    store = SqlCredentialStore(session_factory)
    await store.update_encrypted(account.id, lambda blob: blob + "+v2")
    assert await store.get_encrypted(account.id) == "v1+v2"

    with pytest.raises(ResourceNotFoundException):
        await store.update_encrypted("missing", lambda blob: blob)
