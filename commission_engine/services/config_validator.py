import logging
from decimal import Decimal
from typing import List, Tuple

from commission_engine.core.money import to_decimal, HUNDRED


logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _out_of_range(value) -> bool:
    value = to_decimal(value)
    return value < ZERO or value > HUNDRED


def _not_positive(value) -> bool:
    return value is None or to_decimal(value) <= ZERO


class ConfigValidator:
    @staticmethod
    def validate(config) -> Tuple[bool, List[str]]:
        """Check a candidate configuration.

        Works on any object exposing the configuration attributes
        (``CommissionConfigInput``, ``CommissionConfigData`` or an ORM row);
        ``legal_manager_percent`` and ``post_sale_coordinator_percent`` are
        only checked when the candidate carries them. Messages keep a stable
        order so callers can show them as-is.
        """
        errors: List[str] = []

        if _out_of_range(config.phase_sale_percent):
            errors.append("Sale phase percent must be between 0 and 100")

        if _out_of_range(config.phase_post_sale_percent):
            errors.append("Post-sale phase percent must be between 0 and 100")

        if config.pool_enabled and config.sale_pool_total_percent is not None:
            if _out_of_range(config.sale_pool_total_percent):
                errors.append("Sale pool total percent must be between 0 and 100")

        legal_percent = getattr(config, "legal_manager_percent", None)
        if legal_percent is not None and _out_of_range(legal_percent):
            errors.append("Legal manager percent must be between 0 and 100")

        coordinator_percent = getattr(config, "post_sale_coordinator_percent", None)
        if coordinator_percent is not None and _out_of_range(coordinator_percent):
            errors.append("Post-sale coordinator percent must be between 0 and 100")

        if _not_positive(config.sale_manager_percent):
            errors.append("Sale manager percent must be greater than 0")

        if _not_positive(config.deal_owner_percent):
            errors.append("Deal owner percent must be greater than 0")

        if config.customer_service_enabled and _not_positive(config.customer_service_percent):
            errors.append("Customer service is enabled and must have a percent greater than 0")

        if config.deliveries_enabled and _not_positive(config.deliveries_percent):
            errors.append("Deliveries is enabled and must have a percent greater than 0")

        if config.bonds_enabled and _not_positive(config.bonds_percent):
            errors.append("Bonds is enabled and must have a percent greater than 0")

        phase_sum = to_decimal(config.phase_sale_percent) + to_decimal(config.phase_post_sale_percent)
        if phase_sum != HUNDRED:
            # Accepted as-is; reports built on the current data depend on it
            logger.warning(
                "Phase percents of %s sum to %s, not 100",
                getattr(config, "desarrollo", "<unsaved config>"), phase_sum
            )

        return len(errors) == 0, errors
