from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from config import PRICE_TYPE_DAY, PRICE_TYPE_HOUR
from parking.models import ParkingSpot, Vehicle


class Command(BaseCommand):
    help = "Initialize demo owner, guest, vehicle and parking spots"

    def handle(self, *args, **options):
        DEMO_PASSWORD = "parking-demo"
        SPOTS = [
            ("Central Plaza Parking", "123 Main Street", 50, "40.00", PRICE_TYPE_HOUR),
            ("Airport Express Parking", "789 Airport Way", 800, "250.00", PRICE_TYPE_DAY),
            ("Downtown Office Complex", "456 Business Ave", 25, "30.00", PRICE_TYPE_HOUR),
        ]

        User = get_user_model()
        owner, created = User.objects.get_or_create(
            username="owner", defaults={"email": "owner@example.com"}
        )
        if created:
            owner.set_password(DEMO_PASSWORD)
            owner.save()
            self.stdout.write("Created owner account")

        guest, created = User.objects.get_or_create(
            username="driver", defaults={"email": "driver@example.com"}
        )
        if created:
            guest.set_password(DEMO_PASSWORD)
            guest.save()
            self.stdout.write("Created driver account")

        Vehicle.objects.get_or_create(
            owner=guest,
            license_plate="ABC-123",
            defaults={"make": "Toyota", "model": "Corolla", "color": "White"},
        )

        for name, address, slots, price, price_type in SPOTS:
            spot, created = ParkingSpot.objects.get_or_create(
                owner=owner,
                name=name,
                defaults={
                    "address": address,
                    "total_slots": slots,
                    "price": Decimal(price),
                    "price_type": price_type,
                    "amenities": ["cctv", "covered"],
                },
            )
            if created:
                self.stdout.write(f"Created spot {spot}")

        self.stdout.write(self.style.SUCCESS("Data initialized"))
