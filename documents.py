"""
documents.py

Placeholder PDF documents uploaded where the application asks for
certificates, passports and company letters.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DOCUMENT_PDF = (
    '%PDF-1.4\n'
    '1 0 obj\n<< /Type /Catalog /Pages 2 0 R >>\nendobj\n'
    '2 0 obj\n<< /Type /Pages /Kids [3 0 R] /Count 1 >>\nendobj\n'
    '3 0 obj\n<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>\nendobj\n'
    'xref\n0 4\n'
    '0000000000 65535 f\n'
    '0000000009 00000 n\n'
    '0000000058 00000 n\n'
    '0000000115 00000 n\n'
    'trailer\n<< /Size 4 /Root 1 0 R >>\n'
    'startxref\n196\n%%EOF'
)

PASSPORT_PDF = (
    '%PDF-1.4\n'
    '1 0 obj\n<< /Type /Catalog /Pages 2 0 R >>\nendobj\n'
    '2 0 obj\n<< /Type /Pages /Kids [3 0 R] /Count 1 >>\nendobj\n'
    '3 0 obj\n<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R >>\nendobj\n'
    '4 0 obj\n<< /Length 44 >>\nstream\n'
    'BT\n/F1 12 Tf\n100 700 Td\n(PASSPORT DOCUMENT) Tj\nET\n'
    'endstream\nendobj\n'
    'xref\n0 5\n'
    '0000000000 65535 f\n'
    '0000000009 00000 n\n'
    '0000000058 00000 n\n'
    '0000000115 00000 n\n'
    '0000000245 00000 n\n'
    'trailer\n<< /Size 5 /Root 1 0 R >>\n'
    'startxref\n344\n%%EOF'
)

DOCUMENT_KINDS = {
    'document': DOCUMENT_PDF,
    'passport': PASSPORT_PDF,
}


def ensure_document(path: str, kind: str = 'document', overwrite: bool = False) -> str:
    """
    Make sure a placeholder PDF exists at ``path`` and return its absolute path.

    A file the user supplied is never replaced unless ``overwrite`` is set.
    """
    if kind not in DOCUMENT_KINDS:
        raise ValueError(f"Unknown document kind: {kind}")

    target = Path(path)
    if target.exists() and not overwrite:
        return str(target.resolve())

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(DOCUMENT_KINDS[kind], encoding='latin-1')
    logger.info(f"📄 Created dummy {kind} PDF file: {target}")
    return str(target.resolve())
