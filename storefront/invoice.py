import os

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .schemas import BillRecord

# templates
env = Environment(
    loader=FileSystemLoader(os.path.join(os.path.dirname(__file__), "templates")),
    autoescape=select_autoescape(["html", "xml"])
)


def render_invoice(bill: BillRecord) -> str:
    return env.get_template("invoice.html").render(bill=bill)
