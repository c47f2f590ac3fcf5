from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class User(AbstractUser):
    discord_uid = models.CharField(max_length=32, unique=True, blank=True, null=True)
    display_name = models.CharField(max_length=100, blank=True)
    birthday_month = models.PositiveSmallIntegerField(
        blank=True, null=True,
        validators=[MinValueValidator(1), MaxValueValidator(12)],
    )
    birthday_day = models.PositiveSmallIntegerField(
        blank=True, null=True,
        validators=[MinValueValidator(1), MaxValueValidator(31)],
    )

    def __str__(self):
        return self.display_name or self.username

    def clean(self):
        super().clean()
        if (self.birthday_month is None) != (self.birthday_day is None):
            raise ValidationError('Both birthday month and day must be provided together.')
