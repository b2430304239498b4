"""统一业务异常模型。

所有跨模块抛出的业务级错误都继承自 BusinessError，
由调用方（CLI）统一捕获并决定是否结束会话。

注意：工具执行失败不属于这里的致命错误，ToolError 只在工具内部抛出，
由 ToolExecutor 转换为普通的 tool 消息内容交还给模型。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "NETWORK_ERROR"）。
        message: 用户可读错误信息。
        http_status: 对应的 HTTP 状态码（如有），默认 400。
        extra: 其他补充字段（例如 provider、round 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class NetworkError(BusinessError):
    """网络层错误，例如连接失败、超时等。"""


class ApiError(BusinessError):
    """推理后端返回非 2xx，或在流中返回 error 字段时抛出。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""


class ToolRoundLimitError(BusinessError):
    """单轮对话内连续工具调用轮数超过上限。"""


class ToolError(Exception):
    """可恢复的工具执行失败，文本会原样反馈给模型。"""
