from datetime import timedelta

from django.db import models
from django.utils import timezone


class MercadoLibreToken(models.Model):
    """Stores OAuth2 tokens for a Mercado Libre seller account."""

    user_id = models.CharField(max_length=50, unique=True, db_index=True)
    nickname = models.CharField(max_length=255, blank=True, default="")
    access_token = models.CharField(max_length=255)
    refresh_token = models.CharField(max_length=255)
    expires_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def is_expired(self, buffer: timedelta = timedelta(minutes=5)) -> bool:
        return timezone.now() >= (self.expires_at - buffer)

    def __str__(self):
        return f"ML Token - Seller {self.nickname or self.user_id}"
