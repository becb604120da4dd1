from __future__ import annotations

from flask_wtf import FlaskForm
from wtforms import BooleanField, IntegerField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, NumberRange, Optional


class DecisionForm(FlaskForm):
    comment = TextAreaField("Comment", validators=[Optional(), Length(max=500)])
    step_index = IntegerField("Step", validators=[Optional(), NumberRange(min=0)])


class RejectionForm(DecisionForm):
    comment = TextAreaField(
        "Reason",
        validators=[DataRequired(message="Please provide a reason for rejection."), Length(max=500)],
    )


class PostingForm(FlaskForm):
    gl_account_code = StringField("GL account", validators=[Optional(), Length(max=20)])
    create_ap_transaction = BooleanField("Create AP/AR transaction")
    post_journal_entry = BooleanField("Post journal entry")
