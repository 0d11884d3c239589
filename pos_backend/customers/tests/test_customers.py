# customers/tests/test_customers.py

from django.test import TestCase

from customers.models import Customer
from customers.repositories import CustomerRepository


class CustomerRepositoryTests(TestCase):
    def test_get_by_id(self):
        customer = Customer.objects.create(name="Ann", phone="555-0100")

        self.assertEqual(CustomerRepository().get(customer.pk), customer)
        self.assertEqual(str(customer), "Ann (555-0100)")

    def test_missing_customer_is_none(self):
        self.assertIsNone(CustomerRepository().get("missing"))
        self.assertIsNone(CustomerRepository().get(None))
