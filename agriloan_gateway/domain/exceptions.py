"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input is missing, malformed or out of range"""

    pass


class InvalidStateError(DomainException):
    """Operation is not permitted from the entity's current status"""

    pass


class NotFoundError(DomainException):
    """Referenced user, loan, listing, field log or negotiation does not exist"""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ExternalServiceError(DomainException):
    """A collaborator outside the core failed or is unavailable"""

    pass


class AdviceServiceError(ExternalServiceError):
    """Advice text service returned an error or is unavailable"""

    pass
