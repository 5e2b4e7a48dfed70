"""Topic groups.

A group is ``groups/{id}`` plus its membership ``groupMembers/{id}/{uid}``
and the back-index ``userGroups/{uid}/{id}``. The creator starts as the sole
admin and a group always keeps at least one admin: the last admin cannot
leave, demote themselves or be removed.

Public groups are joined directly. Private groups collect requests under
``groupJoinRequests/{id}/{uid}`` that an admin approves or rejects. A shared
code in ``groupInviteCodes/{code}`` joins any group directly.

Group yaps are written to ``groupYaps/{id}/{yapId}`` and ``yaps/{yapId}`` as
two independent snapshots. Deleting a group leaves the ``yaps`` copies alone.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
from collections.abc import Iterable
from typing import Any

from yappin.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from yappin.schemas.common import MediaItem
from yappin.schemas.group import (
    Group,
    GroupJoinRequest,
    GroupMember,
    GroupMemberView,
    GroupMessage,
    GroupRole,
    JoinOutcome,
)
from yappin.schemas.notification import NotificationType
from yappin.schemas.yap import Yap
from yappin.services.content import Attachment, validate_post_body
from yappin.services.notifications import NotificationService
from yappin.services.runtime import BaseService
from yappin.store import join

logger = logging.getLogger(__name__)

GROUP_CODE_ALPHABET = string.ascii_letters + string.digits
SETTINGS_FIELDS = {"name", "description", "topic", "is_public"}


class GroupService(BaseService):
    """Group CRUD, membership, join requests, group yaps and group chat."""

    def __init__(self, *args: Any, notifications: NotificationService) -> None:
        super().__init__(*args)
        self.notifications = notifications

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_length(self, label: str, value: str | None, low: int, high: int) -> str:
        value = (value or "").strip()
        if not low <= len(value) <= high:
            raise ValidationError(f"{label} must be {low}-{high} characters")
        return value

    def _validate_name(self, name: str | None) -> str:
        return self._check_length(
            "Group name",
            name,
            self.settings.group_name_min_length,
            self.settings.group_name_max_length,
        )

    def _validate_description(self, description: str | None) -> str:
        return self._check_length(
            "Description",
            description,
            self.settings.group_description_min_length,
            self.settings.group_description_max_length,
        )

    def _validate_topic(self, topic: str | None) -> str:
        return self._check_length(
            "Topic",
            topic,
            self.settings.group_topic_min_length,
            self.settings.group_topic_max_length,
        )

    async def _require_group(self, group_id: str) -> dict[str, Any]:
        record = await self.store.get(join("groups", group_id))
        if not record or "id" not in record:
            raise NotFoundError("Group not found")
        return record

    async def _membership(self, group_id: str, uid: str) -> dict[str, Any] | None:
        return await self.store.get(join("groupMembers", group_id, uid))

    async def _require_member(self, group_id: str, uid: str) -> dict[str, Any]:
        membership = await self._membership(group_id, uid)
        if not membership:
            raise AuthorizationError("You must be a member of this group")
        return membership

    async def _require_admin(self, group_id: str, uid: str) -> None:
        membership = await self._membership(group_id, uid)
        if not membership or membership.get("role") != GroupRole.ADMIN.value:
            raise AuthorizationError("Admin access required")

    async def _require_profile(self, uid: str) -> dict[str, Any]:
        record = await self.store.get(join("users", uid))
        if not record:
            raise NotFoundError("Profile not found")
        return record

    async def _generate_invite_code(self) -> str:
        for _ in range(10):
            code = "".join(
                secrets.choice(GROUP_CODE_ALPHABET)
                for _ in range(self.settings.group_invite_code_length)
            )
            if not await self.store.exists(join("groupInviteCodes", code)):
                return code
        raise ConflictError("Could not generate a unique group invite code")

    async def _adjust_member_count(self, group_id: str, delta: int) -> bool:
        """Apply ``delta`` to the member count; return False if the group is gone."""

        def _apply(count: Any) -> Any:
            # Every stored group carries memberCount.
            if count is None:
                return None
            return max(0, count + delta)

        committed = await self.store.transaction(join("groups", group_id, "memberCount"), _apply)
        return committed is not None

    async def _undo_membership(self, group_id: str, uid: str) -> None:
        """Remove a membership written against a group deleted in the meantime."""
        await self.store.update({
            join("groupMembers", group_id, uid): None,
            join("userGroups", uid, group_id): None,
            join("groups", group_id, "memberCount"): None,
        })
        logger.info("Group %s was deleted while admitting %s", group_id, uid)

    def _member_record(self, role: GroupRole) -> dict[str, Any]:
        return GroupMember(joined_at=self.now(), role=role).to_store()

    async def _notify_safely(
        self,
        recipients: Iterable[str],
        notification_type: NotificationType,
        from_uid: str,
        **fields: Any,
    ) -> None:
        # Notifications never fail the group operation that produced them.
        try:
            await self.notifications.fan_out(recipients, notification_type, from_uid, **fields)
        except Exception:
            logger.warning(
                "Failed to send %s notifications", notification_type.value, exc_info=True
            )

    async def _admin_ids(self, group_id: str) -> list[str]:
        members = await self.store.get(join("groupMembers", group_id)) or {}
        return [
            uid for uid, member in members.items()
            if member.get("role") == GroupRole.ADMIN.value
        ]

    # ------------------------------------------------------------------
    # Group CRUD
    # ------------------------------------------------------------------

    async def create_group(
        self,
        name: str,
        description: str,
        topic: str,
        is_public: bool = True,
        image_url: str | None = None,
        image: bytes | None = None,
    ) -> Group:
        """Create a group with the caller as its sole admin.

        Args:
            name: 3-50 characters after trimming.
            description: 10-500 characters after trimming.
            topic: 3-50 characters after trimming.
            is_public: Whether anyone may join without approval.
            image_url: Already uploaded group image.
            image: Raw image bytes uploaded through the binary collaborator.

        Returns:
            The stored group.
        """
        uid = self.require_identity()
        name = self._validate_name(name)
        description = self._validate_description(description)
        topic = self._validate_topic(topic)
        if image is not None:
            image_url = await self.collaborators.upload_binary("group-image", image)

        group_id = self.store.push_key()
        invite_code = await self._generate_invite_code()
        group = Group(
            id=group_id,
            name=name,
            description=description,
            topic=topic,
            is_public=is_public,
            created_by=uid,
            created_at=self.now(),
            member_count=1,
            image_url=image_url,
            invite_code=invite_code,
        )
        await self.store.update({
            join("groups", group_id): group.to_store(),
            join("groupMembers", group_id, uid): self._member_record(GroupRole.ADMIN),
            join("userGroups", uid, group_id): True,
            join("groupInviteCodes", invite_code): group_id,
        })
        logger.info("User %s created group %s", uid, group_id)
        self.collaborators.emit("groups_changed", group_id=group_id)
        return group

    async def update_group_settings(self, group_id: str, **changes: Any) -> Group:
        """Edit name, description, topic or visibility. Admin only."""
        uid = self.require_identity()
        await self._require_group(group_id)
        await self._require_admin(group_id, uid)

        unknown = set(changes) - SETTINGS_FIELDS
        if unknown:
            raise ValidationError(f"Unsupported group settings: {', '.join(sorted(unknown))}")

        updates: dict[str, Any] = {}
        if changes.get("name") is not None:
            updates[join("groups", group_id, "name")] = self._validate_name(changes["name"])
        if changes.get("description") is not None:
            updates[join("groups", group_id, "description")] = self._validate_description(
                changes["description"]
            )
        if changes.get("topic") is not None:
            updates[join("groups", group_id, "topic")] = self._validate_topic(changes["topic"])
        if changes.get("is_public") is not None:
            updates[join("groups", group_id, "isPublic")] = bool(changes["is_public"])
        if updates:
            await self.store.update(updates)
        return await self.get_group(group_id)

    async def delete_group(self, group_id: str) -> None:
        """Delete a group and every group-scoped index in one batch. Admin only.

        Yaps mirrored into ``yaps`` are not removed.
        """
        uid = self.require_identity()
        group = await self._require_group(group_id)
        await self._require_admin(group_id, uid)
        members = await self.store.get(join("groupMembers", group_id)) or {}

        updates: dict[str, Any] = {
            join("groups", group_id): None,
            join("groupMembers", group_id): None,
            join("groupYaps", group_id): None,
            join("groupMessages", group_id): None,
            join("groupJoinRequests", group_id): None,
        }
        if group.get("inviteCode"):
            updates[join("groupInviteCodes", group["inviteCode"])] = None
        for member in members:
            updates[join("userGroups", member, group_id)] = None

        await self.store.update(updates)
        logger.info("User %s deleted group %s", uid, group_id)
        self.collaborators.emit("groups_changed", group_id=group_id)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    async def join_group(self, group_id: str) -> Group:
        """Join ``group_id`` directly, whatever its visibility."""
        uid = self.require_identity()
        await self._require_group(group_id)
        if await self._membership(group_id, uid):
            raise ConflictError("Already a member")

        await self.store.update({
            join("groupMembers", group_id, uid): self._member_record(GroupRole.MEMBER),
            join("userGroups", uid, group_id): True,
            join("groupJoinRequests", group_id, uid): None,
        })
        if not await self._adjust_member_count(group_id, 1):
            await self._undo_membership(group_id, uid)
            raise NotFoundError("Group not found")
        logger.info("User %s joined group %s", uid, group_id)
        self.collaborators.emit("groups_changed", group_id=group_id)
        return await self.get_group(group_id)

    async def join_group_by_invite_code(self, code: str) -> Group:
        code = (code or "").strip()
        if not code:
            raise ValidationError("Invalid invite code")
        group_id = await self.store.get(join("groupInviteCodes", code))
        if not group_id:
            raise NotFoundError("Invalid invite code")
        return await self.join_group(group_id)

    async def leave_group(self, group_id: str) -> None:
        """Leave ``group_id``.

        Raises:
            NotFoundError: If the caller is not a member.
            ConflictError: If the caller is the only admin.
        """
        uid = self.require_identity()
        membership = await self._membership(group_id, uid)
        if not membership:
            raise NotFoundError("Not a member")

        if membership.get("role") == GroupRole.ADMIN.value:
            if len(await self._admin_ids(group_id)) <= 1:
                raise ConflictError("Promote another member to admin before leaving")

        await self.store.update({
            join("groupMembers", group_id, uid): None,
            join("userGroups", uid, group_id): None,
        })
        await self._adjust_member_count(group_id, -1)
        logger.info("User %s left group %s", uid, group_id)
        self.collaborators.emit("groups_changed", group_id=group_id)

    async def request_join_group(self, group_id: str) -> JoinOutcome:
        """Join a public group, or file a join request for a private one."""
        uid = self.require_identity()
        group = await self._require_group(group_id)
        if group.get("isPublic", True):
            await self.join_group(group_id)
            return JoinOutcome(status="joined")

        if await self._membership(group_id, uid):
            raise ConflictError("Already a member")
        if await self.store.exists(join("groupJoinRequests", group_id, uid)):
            raise ConflictError("Request already pending")

        profile = await self._require_profile(uid)
        request = GroupJoinRequest(
            username=profile["username"],
            display_name=profile.get("displayName"),
            photo_url=profile.get("photoURL"),
            requested_at=self.now(),
        )
        await self.store.set(join("groupJoinRequests", group_id, uid), request.to_store())
        logger.info("User %s requested to join group %s", uid, group_id)

        await self._notify_safely(
            await self._admin_ids(group_id),
            NotificationType.JOIN_REQUEST,
            uid,
            group_id=group_id,
            group_name=group.get("name"),
            from_username=profile["username"],
        )
        return JoinOutcome(status="requested")

    async def approve_join_request(self, group_id: str, requester_uid: str) -> None:
        """Admit a requester as a regular member. Admin only.

        The member count is recomputed from a fresh read of the group unless
        ``ATOMIC_DERIVED_COUNTERS`` is enabled.
        """
        uid = self.require_identity()
        await self._require_admin(group_id, uid)
        request_path = join("groupJoinRequests", group_id, requester_uid)
        if not await self.store.exists(request_path):
            raise NotFoundError("Join request not found")

        if await self._membership(group_id, requester_uid):
            await self.store.set(request_path, None)
            return

        group = await self._require_group(group_id)
        updates: dict[str, Any] = {
            join("groupMembers", group_id, requester_uid): self._member_record(GroupRole.MEMBER),
            join("userGroups", requester_uid, group_id): True,
            request_path: None,
        }
        if not self.settings.atomic_derived_counters:
            updates[join("groups", group_id, "memberCount")] = (group.get("memberCount") or 0) + 1
        await self.store.update(updates)
        if self.settings.atomic_derived_counters:
            admitted = await self._adjust_member_count(group_id, 1)
        else:
            admitted = await self.store.exists(join("groups", group_id, "id"))
        if not admitted:
            await self._undo_membership(group_id, requester_uid)
            raise NotFoundError("Group not found")

        logger.info("User %s approved %s into group %s", uid, requester_uid, group_id)
        await self._notify_safely(
            [requester_uid],
            NotificationType.JOIN_REQUEST_APPROVED,
            uid,
            group_id=group_id,
            group_name=group.get("name"),
        )

    async def reject_join_request(self, group_id: str, requester_uid: str) -> None:
        uid = self.require_identity()
        await self._require_admin(group_id, uid)
        request_path = join("groupJoinRequests", group_id, requester_uid)
        if not await self.store.exists(request_path):
            raise NotFoundError("Join request not found")
        await self.store.set(request_path, None)
        logger.info("User %s rejected %s from group %s", uid, requester_uid, group_id)

    async def list_join_requests(self, group_id: str) -> list[GroupJoinRequest]:
        """Return pending join requests, newest first. Admin only."""
        uid = self.require_identity()
        await self._require_admin(group_id, uid)
        records = await self.store.get(join("groupJoinRequests", group_id)) or {}
        requests = [
            GroupJoinRequest.model_validate({**record, "uid": requester})
            for requester, record in records.items()
        ]
        requests.sort(key=lambda request: request.requested_at, reverse=True)
        return requests

    # ------------------------------------------------------------------
    # Admin management
    # ------------------------------------------------------------------

    async def _require_target_member(self, group_id: str, member_uid: str) -> dict[str, Any]:
        membership = await self._membership(group_id, member_uid)
        if not membership:
            raise NotFoundError("User is not a member of this group")
        return membership

    async def promote_member(self, group_id: str, member_uid: str) -> None:
        uid = self.require_identity()
        await self._require_admin(group_id, uid)
        await self._require_target_member(group_id, member_uid)
        group = await self._require_group(group_id)
        await self.store.set(
            join("groupMembers", group_id, member_uid, "role"), GroupRole.ADMIN.value
        )
        logger.info("User %s promoted %s in group %s", uid, member_uid, group_id)
        await self._notify_safely(
            [member_uid],
            NotificationType.PROMOTED_TO_ADMIN,
            uid,
            group_id=group_id,
            group_name=group.get("name"),
        )

    async def demote_member(self, group_id: str, member_uid: str) -> None:
        uid = self.require_identity()
        await self._require_admin(group_id, uid)
        if member_uid == uid:
            raise ValidationError("You cannot demote yourself")
        await self._require_target_member(group_id, member_uid)
        await self.store.set(
            join("groupMembers", group_id, member_uid, "role"), GroupRole.MEMBER.value
        )
        logger.info("User %s demoted %s in group %s", uid, member_uid, group_id)

    async def remove_member(self, group_id: str, member_uid: str) -> None:
        uid = self.require_identity()
        await self._require_admin(group_id, uid)
        if member_uid == uid:
            raise ValidationError("You cannot remove yourself; leave the group instead")
        await self._require_target_member(group_id, member_uid)
        await self.store.update({
            join("groupMembers", group_id, member_uid): None,
            join("userGroups", member_uid, group_id): None,
        })
        await self._adjust_member_count(group_id, -1)
        logger.info("User %s removed %s from group %s", uid, member_uid, group_id)

    # ------------------------------------------------------------------
    # Group content
    # ------------------------------------------------------------------

    async def post_group_yap(
        self,
        group_id: str,
        text: str | None = None,
        media: list[MediaItem] | None = None,
        attachments: list[Attachment] | None = None,
    ) -> Yap:
        """Post a yap inside a group and notify the other members.

        The yap is written to ``groupYaps`` and ``yaps`` in one update. It is
        not indexed under the author's ``userYaps``.
        """
        uid = self.require_identity()
        await self._require_member(group_id, uid)
        media = list(media or [])
        attachments = attachments or []
        text = validate_post_body(
            text,
            len(media) + len(attachments),
            self.settings.yap_max_length,
            self.settings.media_max_items,
        )
        group = await self._require_group(group_id)
        author = await self._require_profile(uid)
        for kind, data in attachments:
            url = await self.collaborators.upload_binary("yap-media", data)
            media.append(MediaItem(type=kind, url=url))

        yap_id = self.store.push_key()
        yap = Yap(
            id=yap_id,
            uid=uid,
            username=author["username"],
            display_name=author.get("displayName"),
            user_photo_url=author.get("photoURL"),
            text=text,
            media=media or None,
            timestamp=self.now(),
            group_id=group_id,
        )
        record = yap.to_store()
        await self.store.update({
            join("groupYaps", group_id, yap_id): record,
            join("yaps", yap_id): record,
        })
        logger.info("User %s posted yap %s in group %s", uid, yap_id, group_id)

        members = await self.store.get(join("groupMembers", group_id)) or {}
        await self._notify_safely(
            members,
            NotificationType.NEW_YAP,
            uid,
            group_id=group_id,
            group_name=group.get("name"),
            yap_id=yap_id,
        )
        return yap

    async def send_group_message(
        self,
        group_id: str,
        text: str | None = None,
        media: list[MediaItem] | None = None,
    ) -> GroupMessage:
        """Append a chat message to the group and stamp its last activity."""
        uid = self.require_identity()
        await self._require_member(group_id, uid)
        text = (text or "").strip() or None
        if text is None and not media:
            raise ValidationError("Message cannot be empty")
        if text is not None and len(text) > self.settings.message_max_length:
            raise ValidationError(
                f"Message must be {self.settings.message_max_length} characters or less"
            )
        profile = await self._require_profile(uid)

        message_id = self.store.push_key()
        now = self.now()
        message = GroupMessage(
            id=message_id,
            sender_id=uid,
            sender_name=profile.get("displayName") or profile["username"],
            sender_photo=profile.get("photoURL"),
            text=text,
            media=media or None,
            timestamp=now,
        )
        await self.store.update({
            join("groupMessages", group_id, message_id): message.to_store(),
            join("groups", group_id, "lastActivity"): now,
        })
        return message

    async def list_group_messages(self, group_id: str, limit: int | None = None) -> list[GroupMessage]:
        """Return the latest group chat messages, oldest first. Members only."""
        uid = self.require_identity()
        await self._require_member(group_id, uid)
        limit = limit or self.settings.message_page_size
        records = await self.store.get(join("groupMessages", group_id)) or {}
        messages = [
            GroupMessage.model_validate({**record, "id": key})
            for key, record in records.items()
        ]
        messages.sort(key=lambda message: message.timestamp)
        return messages[-limit:]

    async def list_group_yaps(self, group_id: str, limit: int | None = None) -> list[Yap]:
        """Return the group's yap snapshots, newest first.

        Private groups are readable by members only.
        """
        group = await self._require_group(group_id)
        if not group.get("isPublic", True):
            await self._require_member(group_id, self.require_identity())
        limit = limit or self.settings.group_yap_page_size
        records = await self.store.get(join("groupYaps", group_id)) or {}
        yaps = [Yap.model_validate(record) for record in records.values()]
        yaps.sort(key=lambda yap: yap.timestamp, reverse=True)
        return yaps[:limit]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_group(self, group_id: str) -> Group:
        return Group.model_validate(await self._require_group(group_id))

    async def get_membership(self, group_id: str, uid: str | None = None) -> GroupMember | None:
        uid = uid or self.require_identity()
        record = await self._membership(group_id, uid)
        return GroupMember.model_validate({**record, "uid": uid}) if record else None

    async def _load_groups(self, group_ids: Iterable[str]) -> list[Group]:
        records = await asyncio.gather(*(self.store.get(join("groups", gid)) for gid in group_ids))
        groups = [
            Group.model_validate(record) for record in records if record and "id" in record
        ]
        groups.sort(key=lambda group: group.member_count, reverse=True)
        return groups

    async def list_my_groups(self) -> list[Group]:
        """Return the caller's groups, largest first."""
        uid = self.require_identity()
        return await self._load_groups(await self.store.get(join("userGroups", uid)) or {})

    async def list_public_groups(self) -> list[Group]:
        """Return every public group, largest first."""
        records = await self.store.get("groups") or {}
        return await self._load_groups(
            gid for gid, record in records.items()
            if isinstance(record, dict) and record.get("isPublic", True)
        )

    async def search_groups(self, query: str) -> list[Group]:
        """Return public groups whose name, topic or description contains ``query``."""
        needle = (query or "").strip().lower()
        groups = await self.list_public_groups()
        if not needle:
            return groups
        return [
            group for group in groups
            if needle in group.name.lower()
            or needle in group.topic.lower()
            or needle in group.description.lower()
        ]

    async def list_group_members(self, group_id: str) -> list[GroupMemberView]:
        """Return members with their profiles, admins first, then by join time."""
        await self._require_group(group_id)
        members = await self.store.get(join("groupMembers", group_id)) or {}
        profiles = await asyncio.gather(
            *(self.store.get(join("users", member)) for member in members)
        )
        views = []
        for (member_uid, membership), profile in zip(members.items(), profiles, strict=True):
            profile = profile or {}
            views.append(GroupMemberView.model_validate({
                **membership,
                "uid": member_uid,
                "username": profile.get("username"),
                "displayName": profile.get("displayName"),
                "photoURL": profile.get("photoURL"),
            }))
        views.sort(key=lambda view: (view.role != GroupRole.ADMIN, view.joined_at))
        return views
