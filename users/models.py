from django.db import models
from django.contrib.auth.models import AbstractUser
from django.utils import timezone


class User(AbstractUser):
    class Role(models.TextChoices):
        CUSTOMER = "customer", "Customer"
        ADMIN = "admin", "Admin"

    class Gender(models.TextChoices):
        FEMALE = "female", "Female"
        MALE = "male", "Male"
        OTHER = "other", "Other"

    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=20, unique=True, null=True, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=20, choices=Gender.choices, blank=True, default="")

    role = models.CharField(max_length=20, choices=Role.choices, default=Role.CUSTOMER, db_index=True)

    email_verified = models.BooleanField(default=False)
    # Created by guest checkout, never signed in.
    is_guest = models.BooleanField(default=False)

    otp_code = models.CharField(max_length=6, blank=True, default="")
    otp_expires_at = models.DateTimeField(null=True, blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_admin(self) -> bool:
        return self.role == self.Role.ADMIN or self.is_staff or self.is_superuser

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def otp_is_valid(self, code: str) -> bool:
        if not self.otp_code or not code or self.otp_code != code:
            return False
        return self.otp_expires_at is not None and timezone.now() <= self.otp_expires_at

    def __str__(self):
        return self.email or self.username or f"User#{self.pk}"


class Address(models.Model):
    TYPE_SHIPPING = "shipping"
    TYPE_BILLING = "billing"
    TYPE_CHOICES = [
        (TYPE_SHIPPING, "Shipping"),
        (TYPE_BILLING, "Billing"),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="addresses")
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, default=TYPE_SHIPPING)

    first_name = models.CharField(max_length=150)
    last_name = models.CharField(max_length=150)
    company = models.CharField(max_length=150, blank=True)
    address_line_1 = models.CharField(max_length=255)
    address_line_2 = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100)
    postal_code = models.CharField(max_length=20)
    country = models.CharField(max_length=100, default="India")
    phone = models.CharField(max_length=20, blank=True)

    # at most one default per user and address type
    is_default = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-is_default", "-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "type"],
                condition=models.Q(is_default=True),
                name="unique_default_address_per_type",
            )
        ]

    def __str__(self):
        return f"{self.get_type_display()} address of {self.user}"
