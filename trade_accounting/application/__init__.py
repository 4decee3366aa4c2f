"""Application layer - Use cases and DTOs."""

from trade_accounting.application.dto.trade_finance_dto import (
    AccountingConfigDTO,
    DiscountCalculationDTO,
    DiscountOperationResponseDTO,
    EffectResponseDTO,
    GeneratedEntryDTO,
    RemittanceResponseDTO,
    SupervisorReviewDTO,
    TemplateDTO,
)
