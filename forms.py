from flask_wtf import FlaskForm
from wtforms import (
    StringField, PasswordField, SubmitField, SelectField, SelectMultipleField,
    TextAreaField, BooleanField, FloatField, MultipleFileField,
)
from wtforms.validators import DataRequired, Email, Length, NumberRange, Optional, ValidationError

from config import MAX_JOB_IMAGES

AVAILABLE_TAGS = [
    'cash register', 'customer service', 'heavy lifting', 'front desk',
    'retail', 'barista', 'inventory', 'cleaning', 'basic coding', 'graphic design',
    'programming', 'web development', 'data analysis', 'healthcare', 'research',
    'marketing', 'writing', 'tutoring', 'manual labor', 'administrative',
    'social media', 'photography', 'event planning', 'sales',
]
TAG_CHOICES = [(tag, tag.title()) for tag in AVAILABLE_TAGS]


class LoginForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired('Please fill in all fields'), Email()])
    password = PasswordField('Password', validators=[DataRequired('Please fill in all fields'), Length(min=6)])
    sign_in = SubmitField('Sign In')
    sign_up = SubmitField('Create Account')


class StudentProfileForm(FlaskForm):
    name = StringField('Name', validators=[Optional(), Length(max=100)])
    bio = TextAreaField('Bio', validators=[Optional()])
    location = StringField('Location', validators=[Optional(), Length(max=100)])
    phone = StringField('Phone', validators=[Optional(), Length(max=40)])
    experience = TextAreaField('Experience', validators=[Optional()])
    interests = SelectMultipleField('Interests', choices=TAG_CHOICES)
    submit = SubmitField('Save Profile')


class CompanyForm(FlaskForm):
    name = StringField('Company Name', validators=[DataRequired('Please enter a company name'), Length(max=200)])
    description = TextAreaField('Description', validators=[DataRequired('Please enter a company description')])
    location = StringField('Location', validators=[Optional(), Length(max=100)])
    email = StringField('Contact Email', validators=[Optional(), Email()])
    phone = StringField('Contact Phone', validators=[Optional(), Length(max=40)])
    submit = SubmitField('Save Company')


class JobForm(FlaskForm):
    title = StringField('Job Title', validators=[
        DataRequired('Job title is required'),
        Length(min=5, message='Title must be at least 5 characters'),
    ])
    description = TextAreaField('Job Description', validators=[
        DataRequired('Job description is required'),
        Length(min=20, message='Description must be at least 20 characters'),
    ])
    location = StringField('Location', validators=[Optional(), Length(max=100)])
    tags = SelectMultipleField('Skill Tags', choices=TAG_CHOICES)
    is_paid = BooleanField('Paid position')
    stipend_amount = FloatField('Stipend', validators=[Optional(), NumberRange(min=0, message='Amount must be positive')])
    images = MultipleFileField('Images')
    submit = SubmitField('Post Job')

    def validate_tags(self, field):
        if not field.data:
            raise ValidationError('Select at least one skill tag')

    def validate_images(self, field):
        if len(self.image_files()) > MAX_JOB_IMAGES:
            raise ValidationError(f'You can attach at most {MAX_JOB_IMAGES} images')

    def image_files(self):
        return [f for f in (self.images.data or []) if getattr(f, 'filename', None)]


class ApplicationForm(FlaskForm):
    note = TextAreaField('Note to employer', validators=[Optional(), Length(max=2000)])
    contact_email = StringField('Contact Email', validators=[Optional(), Email()])
    contact_phone = StringField('Contact Phone', validators=[Optional(), Length(max=40)])
    submit = SubmitField('Submit Application')


class StatusForm(FlaskForm):
    status = SelectField('Status', choices=[('accepted', 'Accept'), ('rejected', 'Reject')])


def stripped(field):
    return (field.data or '').strip()
