from src.core.pdf.documents import (
    BillData,
    FeeLine,
    PaymentData,
    ReceiptData,
    ReportData,
    StudentData,
    render,
)
from src.core.pdf.layout import Document
from src.core.pdf.service import pdf_service

__all__ = [
    "BillData",
    "Document",
    "FeeLine",
    "PaymentData",
    "ReceiptData",
    "ReportData",
    "StudentData",
    "pdf_service",
    "render",
]
