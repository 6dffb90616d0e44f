"""
Industrial Operations Agent

Resolves free-text incident reports from MES, SCADA, ERP and OA systems by
classifying the problem, choosing an execution channel (structured API,
external tool server, or GUI automation) and driving it to completion.
"""

__version__ = "0.1.0"
