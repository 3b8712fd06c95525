import logging

from django.db import transaction

from parking.exceptions import NotFoundError, UnauthorizedError, ValidationError
from parking.models import AvailabilityBlock
from parking.utils.time_utils import validate_window
from services.availability import get_spot

logger = logging.getLogger(__name__)


class BlockManager:
    """Owner-only CRUD for blocked and maintenance windows.

    Blocks only ever withhold capacity, so removing one never overcommits a
    spot; the resolver recomputes free slots from what remains.
    """

    EDITABLE_FIELDS = ("start_time", "end_time", "status", "reason", "available_slots")

    @classmethod
    @transaction.atomic
    def create_block(
        cls,
        owner,
        spot_id,
        start,
        end,
        status=AvailabilityBlock.STATUS_BLOCKED,
        reason="",
        available_slots=None,
    ):
        start, end = validate_window(start, end)
        spot = get_spot(spot_id, lock=True)
        cls._require_owner(spot, owner)

        block = AvailabilityBlock(
            spot=spot,
            start_time=start,
            end_time=end,
            status=status,
            reason=reason or "",
            available_slots=available_slots,
        )
        cls._validate(block)
        block.save()
        logger.info(
            f"Block {block.pk} ({block.status}) created on spot {spot.pk} "
            f"for {start.isoformat()} - {end.isoformat()}"
        )
        return block

    @classmethod
    @transaction.atomic
    def update_block(cls, owner, block_id, **changes):
        unknown = set(changes) - set(cls.EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown block fields: {', '.join(sorted(unknown))}")

        block = cls._get_locked_block(owner, block_id)
        for field, value in changes.items():
            setattr(block, field, value)
        block.start_time, block.end_time = validate_window(
            block.start_time, block.end_time
        )
        cls._validate(block)
        block.save()
        logger.info(f"Block {block.pk} on spot {block.spot_id} updated")
        return block

    @classmethod
    @transaction.atomic
    def delete_block(cls, owner, block_id):
        block = cls._get_locked_block(owner, block_id)
        block.delete()
        logger.info(f"Block {block_id} removed from spot {block.spot_id}")

    @staticmethod
    def list_blocks(spot_id, since=None):
        spot = get_spot(spot_id)
        blocks = AvailabilityBlock.objects.filter(spot=spot)
        if since is not None:
            blocks = blocks.filter(end_time__gt=since)
        return blocks.order_by("start_time")

    # =============================================
    # Helpers
    # =============================================

    @classmethod
    def _get_locked_block(cls, owner, block_id):
        spot_id = (
            AvailabilityBlock.objects.filter(pk=block_id)
            .values_list("spot_id", flat=True)
            .first()
        )
        if spot_id is None:
            raise NotFoundError(f"Availability block {block_id} not found.")
        spot = get_spot(spot_id, lock=True)
        cls._require_owner(spot, owner)
        block = AvailabilityBlock.objects.get(pk=block_id)
        block.spot = spot
        return block

    @staticmethod
    def _require_owner(spot, owner):
        if spot.owner_id != owner.pk:
            logger.warning(f"User {owner.pk} is not the owner of spot {spot.pk}")
            raise UnauthorizedError()

    @staticmethod
    def _validate(block):
        if block.status not in dict(AvailabilityBlock.STATUS_CHOICES):
            raise ValidationError(f"Unknown block status '{block.status}'.")
        if block.available_slots is not None:
            if block.available_slots < 0:
                raise ValidationError("Available slots cannot be negative.")
            if block.available_slots > block.spot.total_slots:
                raise ValidationError(
                    f"A block cannot leave more than {block.spot.total_slots} "
                    "slot(s) available."
                )
