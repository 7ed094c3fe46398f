class DomainException(Exception):
    pass


class ValidationError(DomainException):
    pass


class VariantNotFoundError(ValidationError):
    def __init__(self, product_name: str, weight: str):
        self.product_name = product_name
        self.weight = weight
        super().__init__(f"Вариант {weight} не найден для товара: {product_name}")


class NotFoundError(DomainException):
    pass


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Товар не найден: {product_id}")


class OrderNotFoundError(NotFoundError):
    pass


class ForbiddenError(DomainException):
    pass


class ConflictError(DomainException):
    pass


class DuplicateOrderError(ConflictError):
    def __init__(self, customer_id: str, idempotency_key: str):
        self.customer_id = customer_id
        self.idempotency_key = idempotency_key
        super().__init__(f"Заказ с ключом {idempotency_key} уже создан покупателем {customer_id}")


class InternalError(DomainException):
    pass


class ExternalServiceError(InternalError):
    pass
