# mypy: ignore-errors
# tests/services/test_invites.py
"""Tests for invite code creation, validation and redemption."""

import asyncio

import pytest

from yappin.core.errors import ConflictError, NotFoundError, ValidationError
from yappin.services.invites import INVITE_ALPHABET, SYSTEM_OWNER, generate_code, normalize_code


def test_generated_codes_use_the_readable_alphabet() -> None:
    code = generate_code(8)

    assert len(code) == 8
    assert set(code) <= set(INVITE_ALPHABET)
    assert not set("01IO") & set(INVITE_ALPHABET)


def test_normalize_code() -> None:
    assert normalize_code("  abcd2345 ") == "ABCD2345"
    with pytest.raises(ValidationError):
        normalize_code("   ")
    with pytest.raises(ValidationError):
        normalize_code("AB/CD")


@pytest.mark.asyncio
async def test_user_codes_carry_a_back_reference(registry, users, tree) -> None:
    invite = await registry.invites.create_invite_code(users["alice"])

    assert tree("inviteCodes", invite.code, "createdBy") == users["alice"]
    assert tree("users", users["alice"], "inviteCodes", invite.code) is True


@pytest.mark.asyncio
async def test_system_codes_have_no_back_reference(registry, tree) -> None:
    invite = await registry.invites.create_invite_code(SYSTEM_OWNER, code="launch24")

    assert invite.code == "LAUNCH24"
    assert tree("users") is None
    with pytest.raises(ConflictError):
        await registry.invites.create_invite_code(SYSTEM_OWNER, code="LAUNCH24")


@pytest.mark.asyncio
async def test_validation_accepts_any_case(registry) -> None:
    invite = await registry.invites.create_invite_code(SYSTEM_OWNER)

    assert await registry.invites.validate_invite_code(invite.code.lower())
    assert not await registry.invites.validate_invite_code("ZZZZ2222")
    assert not await registry.invites.validate_invite_code("bad.code")


@pytest.mark.asyncio
async def test_expired_code_cannot_be_redeemed(registry, store) -> None:
    await store.set("inviteCodes/OLDCODE2", {"code": "OLDCODE2", "createdBy": "system", "createdAt": 0})

    assert not await registry.invites.validate_invite_code("OLDCODE2")
    with pytest.raises(ConflictError, match="expired"):
        await registry.invites.redeem_invite_code("OLDCODE2", "uid-x")


@pytest.mark.asyncio
async def test_redeeming_twice_keeps_the_first_claim(registry, tree) -> None:
    invite = await registry.invites.create_invite_code(SYSTEM_OWNER)

    redeemed = await registry.invites.redeem_invite_code(invite.code, "uid-first")
    assert redeemed.used_by == "uid-first"

    with pytest.raises(ConflictError, match="already been used"):
        await registry.invites.redeem_invite_code(invite.code, "uid-second")
    assert tree("inviteCodes", invite.code, "usedBy") == "uid-first"


@pytest.mark.asyncio
async def test_unknown_code_is_not_found(registry) -> None:
    with pytest.raises(NotFoundError):
        await registry.invites.redeem_invite_code("MISSING2", "uid-x")


@pytest.mark.asyncio
async def test_concurrent_redemptions_have_one_winner(registry, tree) -> None:
    invite = await registry.invites.create_invite_code(SYSTEM_OWNER)

    results = await asyncio.gather(
        registry.invites.redeem_invite_code(invite.code, "uid-1"),
        registry.invites.redeem_invite_code(invite.code, "uid-2"),
        return_exceptions=True,
    )

    winners = [result for result in results if not isinstance(result, Exception)]
    losers = [result for result in results if isinstance(result, Exception)]
    assert len(winners) == 1
    assert isinstance(losers[0], ConflictError)
    assert tree("inviteCodes", invite.code, "usedBy") == winners[0].used_by


@pytest.mark.asyncio
async def test_list_invite_codes_newest_first(registry, users, identity) -> None:
    identity.switch(users["bob"])
    first = await registry.invites.create_invite_code(users["bob"])
    second = await registry.invites.create_invite_code(users["bob"])

    listed = await registry.invites.list_invite_codes()

    assert [invite.code for invite in listed] == [second.code, first.code]
