class AlertError(Exception):
    """Excepción base del módulo de alertas de stock bajo"""
    pass


class AlertValidationError(AlertError):
    """Entrada mal formada, detectada antes de ejecutar cualquier consulta"""

    def __init__(self, error: str, details: str):
        super().__init__(f"{error}: {details}")
        self.error = error
        self.details = details


class IdentifierCastError(AlertValidationError):
    """Un id usado para armar una subconsulta tiene formato inválido"""

    def __init__(self, details: str):
        super().__init__("Invalid parameter format", details)


class CompanyNotFoundError(AlertError):
    """ID de empresa bien formado sin registro"""

    def __init__(self, company_id: int):
        super().__init__(f"No company found with ID: {company_id}")
        self.company_id = company_id


class AlertQueryTimeoutError(AlertError):
    """Una consulta de lectura no terminó dentro del timeout configurado"""
    pass
