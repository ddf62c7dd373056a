"""Operations application for the yayasan back-office.

Holds the models, services, serializers and views behind the request
approval workflow, inventory, ledger, patient and room endpoints.
"""
