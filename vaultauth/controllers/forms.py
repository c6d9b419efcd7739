"""Forms for the sign-up, sign-in and code submission endpoints."""

from wtforms import Form, StringField, RadioField
from wtforms.validators import DataRequired, InputRequired, Email, Length, \
    Regexp

from .. import domain


class SignUpForm(Form):
    """Register a new account."""

    email = StringField('E-mail address',
                        validators=[DataRequired(), Email()])
    full_name = StringField('Full name',
                            validators=[DataRequired(), Length(min=2, max=50)])
    role = RadioField(
        'I am a',
        choices=[(domain.Role.STUDENT.value, 'Student'),
                 (domain.Role.STANDARD.value, 'Standard user')],
        validators=[InputRequired()]
    )


class SignInForm(Form):
    """Ask for a code for an existing account."""

    email = StringField('E-mail address',
                        validators=[DataRequired(), Email()])


class CodeForm(Form):
    """Submit the code that was sent by e-mail."""

    account_id = StringField('Account', validators=[DataRequired()])
    code = StringField('Code', validators=[
        DataRequired(),
        Regexp(r'^\s*[0-9]+\s*$', message='The code is made of digits.')
    ])


class ResendForm(Form):
    """Ask for a fresh code. ``target`` is an account ID or an address."""

    target = StringField('Account or e-mail address',
                         validators=[DataRequired()])
