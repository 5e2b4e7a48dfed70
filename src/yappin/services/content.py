"""Yaps, reply threads, likes and reyaps.

Top-level yaps are indexed under ``userYaps/{uid}``; replies are indexed only
under ``yapReplies/{parentId}``, so the two listings partition ``yaps``.

The parent's ``replies`` field is recomputed from a fresh read of the parent
when a reply is created or deleted. That read-then-write is not atomic and
two concurrent replies can both write ``n + 1``. Setting
``ATOMIC_DERIVED_COUNTERS`` moves the adjustment into a single-path
transaction instead.

Deleting a yap does not delete its replies; they stay readable by id.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from yappin.core.errors import AuthorizationError, NotFoundError, ValidationError
from yappin.schemas.common import MediaItem
from yappin.schemas.notification import NotificationType
from yappin.schemas.yap import InteractionStatus, ToggleResult, Yap, YapView
from yappin.services.notifications import NotificationService
from yappin.services.runtime import BaseService
from yappin.store import join

logger = logging.getLogger(__name__)

Attachment = tuple[str, bytes]


def validate_post_body(
    text: str | None,
    media_count: int,
    max_length: int,
    max_media: int,
) -> str | None:
    """Return the stripped text or raise ValidationError.

    Shared by yaps and group yaps: at least one of text or media is
    required, and text is limited to ``max_length`` characters.
    """
    text = (text or "").strip() or None
    if text is None and media_count == 0:
        raise ValidationError("Please enter some text or add media")
    if text is not None and len(text) > max_length:
        raise ValidationError(f"Yap must be {max_length} characters or less")
    if media_count > max_media:
        raise ValidationError(f"A yap can have at most {max_media} attachments")
    return text


def _stage_edge_removal(
    updates: dict[str, Any],
    yap_id: str,
    likes: dict[str, Any] | None,
    reyaps: dict[str, Any] | None,
) -> None:
    for liker in likes or {}:
        updates[join("likes", yap_id, liker)] = None
        updates[join("userLikes", liker, yap_id)] = None
    for reyapper in reyaps or {}:
        updates[join("reyaps", yap_id, reyapper)] = None
        updates[join("userReyaps", reyapper, yap_id)] = None


class ContentService(BaseService):
    """Create, delete and interact with yaps."""

    def __init__(self, *args: Any, notifications: NotificationService) -> None:
        super().__init__(*args)
        self.notifications = notifications

    async def _upload_attachments(self, attachments: list[Attachment]) -> list[MediaItem]:
        media = []
        for kind, data in attachments:
            url = await self.collaborators.upload_binary("yap-media", data)
            media.append(MediaItem(type=kind, url=url))
        return media

    async def _require_yap(self, yap_id: str) -> dict[str, Any]:
        record = await self.store.get(join("yaps", yap_id))
        if not record or "uid" not in record:
            raise NotFoundError("Yap not found")
        return record

    async def _drop_links_to_deleted_parent(self, parent_id: str, yap_id: str) -> None:
        """Clear the reply link and counter if ``parent_id`` was deleted concurrently.

        The reply itself is kept, like any reply whose parent is deleted.
        """
        if await self.store.exists(join("yaps", parent_id, "uid")):
            return
        await self.store.update({
            join("yaps", parent_id, "replies"): None,
            join("yapReplies", parent_id, yap_id): None,
        })
        logger.info("Parent yap %s was deleted while linking reply %s", parent_id, yap_id)

    async def _sweep_late_edges(self, yap_id: str) -> None:
        """Remove like and reyap pairs written after a deleted yap's edges were read."""
        likes, reyaps = await asyncio.gather(
            self.store.get(join("likes", yap_id)),
            self.store.get(join("reyaps", yap_id)),
        )
        if not likes and not reyaps:
            return
        updates: dict[str, Any] = {}
        _stage_edge_removal(updates, yap_id, likes, reyaps)
        await self.store.update(updates)
        logger.info("Removed %d late edges of deleted yap %s", len(updates) // 2, yap_id)

    async def _require_author(self, uid: str) -> dict[str, Any]:
        record = await self.store.get(join("users", uid))
        if not record:
            raise NotFoundError("Profile not found")
        return record

    async def create_yap(
        self,
        text: str | None = None,
        media: list[MediaItem] | None = None,
        reply_to: str | None = None,
        attachments: list[Attachment] | None = None,
    ) -> Yap:
        """Post a yap, or a reply when ``reply_to`` is given.

        Args:
            text: Body text (stripped; limited to ``YAP_MAX_LENGTH``).
            media: Already uploaded attachments.
            reply_to: Id of the parent yap.
            attachments: ``(kind, bytes)`` pairs uploaded before the write.

        Returns:
            The stored yap.

        Raises:
            ValidationError: If the body is empty or too long.
            NotFoundError: If the parent yap does not exist.
        """
        uid = self.require_identity()
        media = list(media or [])
        attachments = attachments or []
        text = validate_post_body(
            text,
            len(media) + len(attachments),
            self.settings.yap_max_length,
            self.settings.media_max_items,
        )
        author = await self._require_author(uid)
        parent = await self._require_yap(reply_to) if reply_to else None
        media.extend(await self._upload_attachments(attachments))

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
            reply_to=reply_to,
        )
        updates: dict[str, Any] = {join("yaps", yap_id): yap.to_store()}

        if parent is None:
            updates[join("userYaps", uid, yap_id)] = True
        else:
            updates[join("yapReplies", reply_to, yap_id)] = True
            if not self.settings.atomic_derived_counters:
                updates[join("yaps", reply_to, "replies")] = (parent.get("replies") or 0) + 1
            if parent.get("uid") != uid:
                self.notifications.stage(
                    updates,
                    parent["uid"],
                    NotificationType.REPLY,
                    uid,
                    yap_id=yap_id,
                    reply_to=reply_to,
                    from_username=author["username"],
                )

        await self.notifications.stage_mentions(
            updates,
            text,
            uid,
            yap_id=yap_id,
            from_username=author["username"],
        )
        await self.store.update(updates)

        if parent is not None:
            if self.settings.atomic_derived_counters:
                await self.store.transaction(
                    join("yaps", reply_to, "replies"),
                    lambda count: None if count is None else count + 1,
                )
            await self._drop_links_to_deleted_parent(reply_to, yap_id)

        logger.info("User %s created yap %s", uid, yap_id)
        self.collaborators.emit("yap_created", yap_id=yap_id, reply_to=reply_to)
        return yap

    async def delete_yap(self, yap_id: str, parent_id: str | None = None) -> None:
        """Delete one of the caller's yaps together with its like and reyap edges.

        Replies to the deleted yap are left in place; only its own
        ``yapReplies`` bucket is removed.

        Raises:
            NotFoundError: If the yap does not exist.
            AuthorizationError: If the caller is not the author.
        """
        uid = self.require_identity()
        record = await self._require_yap(yap_id)
        if record.get("uid") != uid:
            raise AuthorizationError("You can only delete your own yaps")
        parent_id = parent_id or record.get("replyTo")

        likes, reyaps = await asyncio.gather(
            self.store.get(join("likes", yap_id)),
            self.store.get(join("reyaps", yap_id)),
        )

        updates: dict[str, Any] = {
            join("yaps", yap_id): None,
            join("yapReplies", yap_id): None,
        }
        _stage_edge_removal(updates, yap_id, likes, reyaps)

        if parent_id:
            updates[join("yapReplies", parent_id, yap_id)] = None
            if not self.settings.atomic_derived_counters:
                parent = await self.store.get(join("yaps", parent_id))
                if parent:
                    updates[join("yaps", parent_id, "replies")] = max(
                        0, (parent.get("replies") or 1) - 1
                    )
        else:
            updates[join("userYaps", uid, yap_id)] = None

        if record.get("groupId"):
            updates[join("groupYaps", record["groupId"], yap_id)] = None

        await self.store.update(updates)
        await self._sweep_late_edges(yap_id)

        if parent_id:
            if self.settings.atomic_derived_counters:
                await self.store.transaction(
                    join("yaps", parent_id, "replies"),
                    lambda count: None if count is None else max(0, count - 1),
                )
            else:
                await self._drop_links_to_deleted_parent(parent_id, yap_id)

        logger.info("User %s deleted yap %s (%d paths)", uid, yap_id, len(updates))
        self.collaborators.emit("yap_deleted", yap_id=yap_id)

    async def _toggle_edge(
        self,
        yap_id: str,
        edge: str,
        user_edge: str,
        counter: str,
        notification_type: NotificationType,
        yap: dict[str, Any] | None = None,
    ) -> ToggleResult:
        uid = self.require_identity()
        yap = yap or await self._require_yap(yap_id)
        active = await self.store.get(join(user_edge, uid, yap_id))

        if active:
            await self.store.update({
                join(edge, yap_id, uid): None,
                join(user_edge, uid, yap_id): None,
            })
            count = await self.store.transaction(
                join("yaps", yap_id, counter),
                lambda current: None if current is None else max(0, current - 1),
            )
            logger.debug("User %s removed %s on %s", uid, counter, yap_id)
            return ToggleResult(active=False, count=count or 0)

        updates: dict[str, Any] = {
            join(edge, yap_id, uid): True,
            join(user_edge, uid, yap_id): True,
        }
        if yap.get("uid") != uid:
            self.notifications.stage(updates, yap["uid"], notification_type, uid, yap_id=yap_id)
        await self.store.update(updates)
        # Stored yaps always carry their counters; a missing one means the yap is gone.
        count = await self.store.transaction(
            join("yaps", yap_id, counter),
            lambda current: None if current is None else current + 1,
        )
        if count is None:
            await self.store.update(dict.fromkeys(updates))
            logger.info("Yap %s was deleted while %s added %s", yap_id, uid, counter)
            raise NotFoundError("Yap not found")
        logger.debug("User %s added %s on %s", uid, counter, yap_id)
        return ToggleResult(active=True, count=count)

    async def toggle_like(self, yap_id: str) -> ToggleResult:
        """Like or unlike ``yap_id`` for the caller."""
        return await self._toggle_edge(
            yap_id, "likes", "userLikes", "likes", NotificationType.LIKE
        )

    async def toggle_reyap(self, yap_id: str) -> ToggleResult:
        """Reyap or undo a reyap of ``yap_id`` for the caller.

        Raises:
            AuthorizationError: If the author has disabled reyaps and the
                caller has not reyapped the yap already.
        """
        uid = self.require_identity()
        yap = await self._require_yap(yap_id)
        already = await self.store.get(join("userReyaps", uid, yap_id))
        if not already and yap.get("uid") != uid:
            disabled = await self.store.get(join("users", yap["uid"], "neverAllowReyaps"))
            if disabled:
                raise AuthorizationError("This user has disabled reyaps")
        return await self._toggle_edge(
            yap_id, "reyaps", "userReyaps", "reyaps", NotificationType.REYAP, yap=yap
        )

    async def get_yap(self, yap_id: str) -> Yap:
        return Yap.model_validate(await self._require_yap(yap_id))

    async def get_interaction_status(self, yap_id: str) -> InteractionStatus:
        """Return whether the caller has liked and reyapped ``yap_id``."""
        uid = self.require_identity()
        liked, reyapped = await asyncio.gather(
            self.store.get(join("userLikes", uid, yap_id)),
            self.store.get(join("userReyaps", uid, yap_id)),
        )
        return InteractionStatus(is_liked=bool(liked), is_reyapped=bool(reyapped))

    async def _load_views(self, yap_ids: list[str]) -> list[YapView]:
        uid = self.collaborators.current_identity()
        records = await asyncio.gather(*(self.store.get(join("yaps", i)) for i in yap_ids))
        liked: dict[str, Any] = {}
        reyapped: dict[str, Any] = {}
        if uid:
            liked, reyapped = await asyncio.gather(
                self.store.get(join("userLikes", uid)),
                self.store.get(join("userReyaps", uid)),
            )
        views = []
        for record in records:
            if not record:
                continue
            view = YapView.model_validate(record)
            view.is_liked = record["id"] in (liked or {})
            view.is_reyapped = record["id"] in (reyapped or {})
            views.append(view)
        return views

    async def get_replies(self, yap_id: str) -> list[YapView]:
        """Return the direct replies to ``yap_id``, oldest first."""
        reply_ids = await self.store.get(join("yapReplies", yap_id)) or {}
        views = await self._load_views(list(reply_ids))
        views.sort(key=lambda view: view.timestamp)
        return views

    async def list_user_yaps(self, uid: str) -> list[YapView]:
        """Return the top-level yaps of ``uid``, newest first."""
        yap_ids = await self.store.get(join("userYaps", uid)) or {}
        views = await self._load_views(list(yap_ids))
        views.sort(key=lambda view: view.timestamp, reverse=True)
        return views

    async def load_timeline(self, limit: int = 50) -> list[YapView]:
        """Return top-level yaps by the caller and everyone they follow, newest first."""
        uid = self.require_identity()
        following = await self.store.get(join("following", uid)) or {}
        authors = [uid, *following]
        buckets = await asyncio.gather(
            *(self.store.get(join("userYaps", author)) for author in authors)
        )
        yap_ids = [yap_id for bucket in buckets for yap_id in (bucket or {})]
        views = await self._load_views(yap_ids)
        views.sort(key=lambda view: view.timestamp, reverse=True)
        return views[:limit]
