# contractdesk/services/client_notifications.py
"""Message bodies sent to clients after a committed change."""


def _money(symbol: str, value) -> str:
    return f"{symbol}{float(value or 0):.2f}"


def _item_line(index: int, item: dict, symbol: str) -> str:
    parts = [f"{index}. {item.get('description', '')}"]
    if item.get("area") is not None:
        parts.append(f"Area: {item['area']} sq.ft")
    if item.get("rate") is not None:
        parts.append(f"Rate: {_money(symbol, item['rate'])}")
    total = item.get("total")
    parts.append(f"Total: {_money(symbol, total if total is not None else item.get('rate'))}")
    return ", ".join(parts)


def quotation_url(base_url: str, number: str) -> str:
    return f"{(base_url or '').rstrip('/')}/quotations/{number}"


def invoice_url(base_url: str, invoice_id: str, token: str) -> str:
    return f"{(base_url or '').rstrip('/')}/invoice/{invoice_id}?token={token}"


def quotation_summary_message(q: dict, *, created: bool, base_url: str, symbol: str = "₹") -> str:
    items = "; ".join(_item_line(i, item, symbol) for i, item in enumerate(q.get("line_items") or [], start=1))
    discount = f", Discount: {_money(symbol, q['discount'])}" if (q.get("discount") or 0) > 0 else ""
    verb = "created" if created else "updated"
    tail = "" if created else " You can now accept or reject it again."
    return (
        f"Dear {q['client_name']}, your Quotation #{q['number']} has been {verb}. "
        f"Items: {items}. Subtotal: {_money(symbol, q.get('subtotal'))}{discount}, "
        f"Grand Total: {_money(symbol, q.get('grand_total'))}.{tail} "
        f"View details: {quotation_url(base_url, q['number'])}"
    )


def quotation_status_message(q: dict, *, base_url: str) -> str:
    return (
        f"Dear {q['client_name']}, Quotation #{q['number']} is now {q['status']}. "
        f"Thank you! View details: {quotation_url(base_url, q['number'])}"
    )


def payment_received_message(project: dict, invoice: dict | None, amount: float, *,
                             base_url: str, symbol: str = "₹") -> str:
    link = ""
    if invoice:
        link = f" View invoice: {invoice_url(base_url, invoice['invoice_id'], invoice['access_token'])}"
    return (
        f"Dear {project['client_name']}, we have received a payment of {_money(symbol, amount)} "
        f"towards Quotation #{project['quotation_number']}. "
        f"Total Paid: {_money(symbol, project['total_paid'])}. "
        f"Amount Due: {_money(symbol, project['amount_due'])}.{link}"
    )
