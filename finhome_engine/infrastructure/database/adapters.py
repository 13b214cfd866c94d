"""Row ↔ domain value conversions; the engine never sees ORM objects"""

from finhome_engine.domain.exceptions import InvalidParameter
from finhome_engine.domain.models import (
    Frequency,
    InvestmentParameters,
    LedgerEntryRequest,
    LenderOffer,
    LoanParameters,
    LoanPurpose,
    PersonalFinances,
    PlanInputs,
    RecurringDefinition,
    TransactionTemplate,
    TransactionType,
)
from finhome_engine.infrastructure.database.models import (
    BankInterestRate,
    FinancialPlan,
    LedgerTransaction,
    RecurringTransaction,
)


def recurring_from_row(row: RecurringTransaction) -> RecurringDefinition:
    transaction_type = TransactionType(row.transaction_type)
    if transaction_type == TransactionType.income:
        category_id = row.income_category_id
    elif transaction_type == TransactionType.expense:
        category_id = row.expense_category_id
    else:
        category_id = None

    template = TransactionTemplate(
        transaction_type=transaction_type,
        amount=row.amount,
        wallet_id=row.wallet_id,
        name=row.name or "",
        description=row.description,
        category_id=category_id,
        transfer_to_wallet_id=row.transfer_to_wallet_id,
    )
    return RecurringDefinition(
        id=row.id,
        owner_id=row.user_id,
        template=template,
        frequency=Frequency(row.frequency),
        interval=row.frequency_interval,
        start_date=row.start_date,
        next_due_date=row.next_due_date,
        end_date=row.end_date,
        max_occurrences=row.max_occurrences,
        occurrences_created=row.occurrences_created,
        is_active=row.is_active,
    )


def recurring_row_from_definition(definition: RecurringDefinition) -> RecurringTransaction:
    template = definition.template
    return RecurringTransaction(
        id=definition.id,
        user_id=definition.owner_id,
        name=template.name,
        wallet_id=template.wallet_id,
        transaction_type=template.transaction_type.value,
        amount=template.amount,
        description=template.description,
        expense_category_id=template.category_id if template.transaction_type == TransactionType.expense else None,
        income_category_id=template.category_id if template.transaction_type == TransactionType.income else None,
        transfer_to_wallet_id=template.transfer_to_wallet_id,
        frequency=definition.frequency.value,
        frequency_interval=definition.interval,
        start_date=definition.start_date,
        end_date=definition.end_date,
        max_occurrences=definition.max_occurrences,
        occurrences_created=definition.occurrences_created,
        next_due_date=definition.next_due_date,
        is_active=definition.is_active,
    )


def apply_schedule_state(row: RecurringTransaction, definition: RecurringDefinition) -> None:
    """Copy the scheduler-owned fields onto an existing row"""
    row.occurrences_created = definition.occurrences_created
    row.next_due_date = definition.next_due_date
    row.is_active = definition.is_active


def ledger_row_from_entry(entry: LedgerEntryRequest) -> LedgerTransaction:
    return LedgerTransaction(
        user_id=entry.owner_id,
        wallet_id=entry.wallet_id,
        transaction_type=entry.transaction_type.value,
        amount=entry.amount,
        description=entry.description,
        expense_category_id=entry.category_id if entry.transaction_type == TransactionType.expense else None,
        income_category_id=entry.category_id if entry.transaction_type == TransactionType.income else None,
        transfer_to_wallet_id=entry.transfer_to_wallet_id,
        transaction_date=entry.due_date,
        recurring_transaction_id=entry.definition_id,
        due_date=entry.due_date,
        occurrence_number=entry.occurrence_number,
    )


def offer_from_row(row: BankInterestRate) -> LenderOffer:
    return LenderOffer(
        bank_id=row.bank_id,
        bank_name=row.bank_name or "",
        interest_rate_percent=row.interest_rate,
        promotional_rate_percent=row.promotional_rate,
        promotional_period_months=row.promotional_period_months,
        min_amount=row.min_loan_amount,
        max_amount=row.max_loan_amount,
        min_term_months=row.min_term_months,
        max_term_months=row.max_term_months,
        max_ltv_ratio_percent=row.max_ltv_ratio,
        processing_fee=row.processing_fee if row.processing_fee is not None else 0.0,
    )


def plan_inputs_from_row(row: FinancialPlan) -> PlanInputs:
    """
    Map a stored plan into engine inputs.

    Investment parameters are attached only to investment plans that carry
    an expected rental income.
    """
    try:
        purpose = LoanPurpose(row.plan_type)
    except ValueError as e:
        raise InvalidParameter(f"Plan {row.id} has unknown plan_type {row.plan_type!r}") from e
    loan = LoanParameters(
        principal=row.purchase_price - row.down_payment,
        annual_rate_percent=row.interest_rate,
        term_months=row.loan_term_years * 12,
        promotional_rate_percent=row.promotional_rate,
        promotional_period_months=row.promotional_period_months,
    )
    finances = PersonalFinances(monthly_income=row.monthly_income, monthly_expenses=row.monthly_expenses)

    investment = None
    if purpose == LoanPurpose.investment and row.expected_rental_income is not None:
        investment = InvestmentParameters(
            expected_rental_income=row.expected_rental_income,
            property_expenses=row.property_expenses if row.property_expenses is not None else 0.0,
            appreciation_rate_percent=(
                row.expected_appreciation_rate if row.expected_appreciation_rate is not None else 0.0
            ),
            initial_property_value=row.purchase_price,
        )

    return PlanInputs(plan_id=row.id, purpose=purpose, loan=loan, finances=finances, investment=investment)
