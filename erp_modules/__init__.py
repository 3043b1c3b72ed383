"""
ERP Modules.

Thin orchestration layers over the ERP kernel, engines and services.

Modules:
- Reporting: trial balance, income statement, balance sheet, liquidity
  analysis, inventory valuation, counterparty statements

Actual processing logic lives in the kernel and engines.
"""
