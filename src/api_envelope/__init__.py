"""REST 响应包裹协议：资源序列化、统一包裹、访问控制与异常渲染。"""
