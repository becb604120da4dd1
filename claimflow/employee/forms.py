from __future__ import annotations

from decimal import Decimal

from flask_wtf import FlaskForm
from wtforms import DecimalField, SelectField, StringField, TextAreaField
from wtforms.fields import DateField
from wtforms.validators import DataRequired, Length, NumberRange, Optional, ValidationError

from claimflow.models import ExpenseType, Urgency


class ClaimForm(FlaskForm):
    amount = DecimalField("Amount", places=2, rounding=None, validators=[NumberRange(min=Decimal("0"))])
    currency = StringField("Currency", validators=[Optional(), Length(min=3, max=10)])
    category = StringField("Category", validators=[DataRequired(), Length(max=120)])
    description = TextAreaField("Description", validators=[Optional(), Length(max=500)])
    vendor = StringField("Vendor", validators=[Optional(), Length(max=255)])
    reference = StringField("Reference", validators=[Optional(), Length(max=120)])
    expense_date = DateField("Date of expense", validators=[Optional()])
    invoice_date = DateField("Invoice date", validators=[Optional()])
    due_date = DateField("Due date", validators=[Optional()])
    tax_amount = DecimalField(
        "Tax amount",
        places=2,
        rounding=None,
        validators=[Optional(), NumberRange(min=Decimal("0"))],
    )
    urgency = SelectField(
        "Urgency",
        choices=[(u.value, u.value) for u in Urgency],
        default=Urgency.NORMAL.value,
    )
    expense_type = SelectField(
        "Expense type",
        choices=[(t.value, t.value) for t in ExpenseType],
        default=ExpenseType.REIMBURSEMENT.value,
    )
    pay_to = StringField("Pay to", validators=[Optional(), Length(max=255)])
    submission_name = StringField("Submission name", validators=[Optional(), Length(max=150)])

    def validate_due_date(self, field):  # pylint: disable=missing-docstring
        if self.invoice_date.data and field.data and field.data < self.invoice_date.data:
            raise ValidationError("Due date must not be before the invoice date.")
