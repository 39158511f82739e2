from fastapi import HTTPException

class CustomException(HTTPException):
    def __init__(self, code: str, message: str, dev_message: str = "", status_code: int = 400, detail: str = ""):
        super().__init__(status_code=status_code, detail=message)
        self.code = code
        self.message = message
        self.dev_message = dev_message
        self.detail = detail

    def __str__(self) -> str:
        return self.message

    def to_dict(self):
        return {
            "code": self.code,
            "message": self.message,
            "detail": self.detail,
            "dev_message": self.dev_message
        }

class ModuleNotFound(CustomException):
    def __init__(self, module_id: str):
        super().__init__("MODULE_NOT_FOUND", f"Module not found: {module_id}", status_code=404)
        self.module_id = module_id

class DuplicateModule(CustomException):
    def __init__(self, module_id: str):
        super().__init__("DUPLICATE_MODULE", f"Module already registered: {module_id}", status_code=409)
        self.module_id = module_id

class ModuleExecutionError(CustomException):
    """모듈 execute() 중 발생한 실패"""
    def __init__(self, message: str, dev_message: str = "", code: str = "MODULE_EXECUTION_FAILED"):
        super().__init__(code, message, dev_message=dev_message, status_code=502)

class ProviderError(ModuleExecutionError):
    """생성 API(텍스트/이미지/비디오/오디오/검색) 호출 실패"""
    def __init__(self, message: str, status: int = None):
        super().__init__(message, dev_message=f"provider status={status}" if status else "", code="PROVIDER_ERROR")
        self.provider_status = status

class ExecutionCancelled(CustomException):
    def __init__(self, execution_id: str):
        super().__init__("EXECUTION_CANCELLED", f"Execution cancelled: {execution_id}", status_code=409)
        self.execution_id = execution_id

class ExecutionNotFound(CustomException):
    def __init__(self, execution_id: str):
        super().__init__("EXECUTION_NOT_FOUND", "Execution not found", dev_message=execution_id, status_code=404)

class TemplateNotFound(CustomException):
    def __init__(self, template_id: str):
        super().__init__("TEMPLATE_NOT_FOUND", f"Template not found: {template_id}", status_code=404)
        self.template_id = template_id

class StorageError(CustomException):
    def __init__(self, message: str, dev_message: str = ""):
        super().__init__("STORAGE_ERROR", message, dev_message=dev_message, status_code=500)
