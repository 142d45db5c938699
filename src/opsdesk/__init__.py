"""OpsDesk package.

Internal operations back office: time tracking, overtime/leave approvals,
cash advance and liquidation workflows, and store/ticket/inventory
management. Organized by feature modules (tickets, overtime, leave, ...)
with a thin Flask controller layer over service/repository layers.
"""
