# customers/repositories.py

from __future__ import annotations

from customers.models import Customer


class CustomerRepository:
    def get(self, customer_id) -> Customer | None:
        if not customer_id:
            return None
        return Customer.objects.filter(pk=customer_id).first()
