"""
异常定义模块 (Exception Definitions)

转发过程中所有错误都以异常形式抛给 write 的调用方，库内部不记录、不吞掉、不重试。

All forwarding errors are raised to the caller of write; nothing is logged,
swallowed or retried inside the library.
"""
from typing import Optional


class ForwarderError(Exception):
    """转发异常基类 (Base Forwarder Exception)"""
    error: str = "forwarder_error"

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class ConfigError(ForwarderError):
    """配置错误：缺少 license、主机名解析失败、未 connect 即 write。"""
    error = "config_error"


class SerializationError(ForwarderError):
    """请求体序列化失败 (Serialization Failure)"""
    error = "serialization_error"


class TransportError(ForwarderError):
    """网络请求失败 (Transport Failure)"""
    error = "transport_error"


# ============================================================
# HTTP 状态码错误 (Status Code Errors)
# ============================================================

class StatusError(ForwarderError):
    """非 2xx 响应 (Non-success HTTP Status)"""
    error = "bad_status"

    def __init__(self, message: str, status_code: int, detail: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message, detail)


class VersionMismatchError(StatusError):
    """400 / 404 / 405：客户端与接口版本不匹配"""
    error = "version_mismatch"


class AuthenticationError(StatusError):
    """403：缺少或无效的 license key"""
    error = "authentication_error"


class PayloadTooLargeError(StatusError):
    """413：单次请求指标过多"""
    error = "payload_too_large"


class EndpointUnavailableError(StatusError):
    """500 / 502 / 503 / 504：接口不可用"""
    error = "endpoint_unavailable"


class BadStatusError(StatusError):
    """其他非成功状态码"""
    error = "bad_status"


# ============================================================
# 响应体错误 (Response Body Errors)
# ============================================================

class ApplicationError(ForwarderError):
    """接口接受了请求，但响应体报告失败。"""
    error = "application_error"


class InvalidResponseError(ApplicationError):
    """响应体不是合法 JSON。"""
    error = "invalid_response"
