from sqlalchemy.orm import Session

from pizzeria.models import DiscountType, Reward, UserVoucher

from . import exceptions
from .voucher_service import MAX_PERCENTAGE


class RewardService:
    def __init__(self, db: Session):
        self.db = db

    def list_rewards(self, *, include_inactive: bool = False) -> list[Reward]:
        query = self.db.query(Reward)
        if not include_inactive:
            query = query.filter(Reward.active == True)  # noqa: E712
        return query.order_by(Reward.points_required, Reward.id).all()

    def get_reward(self, reward_id: int) -> Reward:
        reward = self.db.query(Reward).filter(Reward.id == reward_id).first()
        if not reward:
            raise exceptions.NotFoundError("Reward not found")
        return reward

    def create_reward(self, *, data: dict) -> Reward:
        reward = Reward(**data)
        self.db.add(reward)
        self.db.commit()
        self.db.refresh(reward)
        return reward

    def update_reward(self, *, reward_id: int, data: dict) -> Reward:
        reward = self.get_reward(reward_id)
        discount_type = data.get("discount_type", reward.discount_type)
        discount_amount = data.get("discount_amount", reward.discount_amount)
        if discount_type == DiscountType.PERCENTAGE and discount_amount > MAX_PERCENTAGE:
            raise exceptions.ValidationError(
                "Percentage discounts cannot exceed 100",
                details={"discount_amount": str(discount_amount)},
            )
        for key, value in data.items():
            setattr(reward, key, value)
        self.db.add(reward)
        self.db.commit()
        self.db.refresh(reward)
        return reward

    def delete_reward(self, *, reward_id: int) -> None:
        """Deactivate rewards that already issued vouchers, delete the rest."""

        reward = self.get_reward(reward_id)
        issued = self.db.query(UserVoucher.id).filter(UserVoucher.reward_id == reward.id).first()
        if issued:
            reward.active = False
        else:
            self.db.delete(reward)
        self.db.commit()
