import base64
from io import BytesIO
from xml.sax.saxutils import escape
from dateutil.relativedelta import relativedelta
from reportlab.lib.pagesizes import A4
from reportlab.platypus import (
    SimpleDocTemplate, Paragraph, Table, TableStyle, Spacer, Image
)
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER
from reportlab.lib import colors
from reportlab.lib.utils import ImageReader


def format_money(amount_cents, currency):
    return f"{currency} {(amount_cents or 0) / 100:,.2f}"


def lease_duration(start_date, end_date) -> str:
    delta = relativedelta(end_date, start_date)
    months = delta.years * 12 + delta.months
    parts = []
    if months:
        parts.append(f"{months} month" + ("s" if months != 1 else ""))
    if delta.days:
        parts.append(f"{delta.days} day" + ("s" if delta.days != 1 else ""))
    return ", ".join(parts) or "0 days"


def _signature_flowable(signature, styles):
    """Decode a data-URL / base64 PNG signature into an Image, or a placeholder."""
    if not signature:
        return Paragraph("<i>Not signed</i>", styles["Normal"])

    raw = signature.split(",", 1)[1] if signature.startswith("data:") else signature
    try:
        image_bytes = base64.b64decode(raw, validate=True)
        ImageReader(BytesIO(image_bytes))
    except Exception:
        # typed signatures are stored as plain text
        return Paragraph(f"<i>{escape(signature[:80])}</i>", styles["Normal"])

    return Image(BytesIO(image_bytes), width=160, height=60)


def generate_contract_pdf(contract, property_obj, landlord, tenant, checklist=None) -> bytes:
    buffer = BytesIO()

    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=40,
        leftMargin=40,
        topMargin=40,
        bottomMargin=40,
    )

    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name="Center", alignment=TA_CENTER))
    elements = []

    # HEADER
    elements.append(Paragraph("<b>RESIDENTIAL RENTAL AGREEMENT</b>", styles["Title"]))
    elements.append(Paragraph(
        f"Contract ID: {contract.id}<br/>Status: {contract.status.upper()}",
        styles["Center"]))
    elements.append(Spacer(1, 20))

    # PARTIES & PROPERTY
    elements.append(Paragraph("<b>Parties</b>", styles["Heading2"]))
    parties = Table(
        [
            ["Landlord", landlord.full_name if landlord else "-"],
            ["Tenant", tenant.full_name if tenant else "-"],
            ["Property", property_obj.title if property_obj else "-"],
            ["Address", property_obj.address if property_obj else "-"],
        ],
        colWidths=[150, 350]
    )
    parties.setStyle(TableStyle([
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("BACKGROUND", (0, 0), (0, -1), colors.whitesmoke),
        ("LEFTPADDING", (0, 0), (-1, -1), 8),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]))
    elements.append(parties)
    elements.append(Spacer(1, 20))

    # FINANCIAL TERMS
    elements.append(Paragraph("<b>Lease Terms</b>", styles["Heading2"]))
    terms_table = Table(
        [
            ["Start Date", str(contract.start_date)],
            ["End Date", str(contract.end_date)],
            ["Duration", lease_duration(contract.start_date, contract.end_date)],
            ["Monthly Rent", format_money(contract.monthly_rent, contract.currency)],
            ["Security Deposit", format_money(contract.security_deposit, contract.currency)],
        ],
        colWidths=[150, 350]
    )
    terms_table.setStyle(TableStyle([
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("BACKGROUND", (0, 0), (0, -1), colors.whitesmoke),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]))
    elements.append(terms_table)
    elements.append(Spacer(1, 15))

    if contract.terms:
        elements.append(Paragraph("<b>Terms and Conditions</b>", styles["Heading2"]))
        for line in contract.terms.splitlines():
            if line.strip():
                elements.append(Paragraph(escape(line), styles["Normal"]))
        elements.append(Spacer(1, 10))

    if contract.special_conditions:
        elements.append(Paragraph("<b>Special Conditions</b>", styles["Heading2"]))
        elements.append(Paragraph(escape(contract.special_conditions), styles["Normal"]))
        elements.append(Spacer(1, 10))

    # CHECKLIST SNAPSHOT
    rooms = (checklist.items or {}).get("rooms", []) if checklist is not None else []
    if rooms:
        elements.append(Paragraph("<b>Move-In Checklist</b>", styles["Heading2"]))
        rows = [["Room", "Item", "Condition", "Notes"]]
        for room in rooms:
            for item in room.get("items", []):
                rows.append([
                    room.get("room", "-"),
                    item.get("name", "-"),
                    item.get("condition") or "-",
                    item.get("notes") or "-",
                ])
        checklist_table = Table(rows, colWidths=[110, 150, 90, 150])
        checklist_table.setStyle(TableStyle([
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ]))
        elements.append(checklist_table)
        elements.append(Spacer(1, 20))

    # SIGNATURES
    elements.append(Paragraph("<b>Signatures</b>", styles["Heading2"]))
    signatures = Table(
        [
            ["Landlord", "Tenant"],
            [
                _signature_flowable(contract.landlord_signature, styles),
                _signature_flowable(contract.tenant_signature, styles),
            ],
            [
                str(contract.landlord_signed_at or "-"),
                str(contract.tenant_signed_at or "-"),
            ],
        ],
        colWidths=[250, 250]
    )
    signatures.setStyle(TableStyle([
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightblue),
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]))
    elements.append(signatures)

    doc.build(elements)
    return buffer.getvalue()
