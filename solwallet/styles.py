"""CSS styles for the Solana Quick Wallet application."""

CSS = """
Screen {
    background: #1e1e2e;
}

Header {
    background: #181825;
    text-style: bold;
    padding: 0 1;
    height: 3;
}

#account-status {
    background: #181825;
    color: #a6adc8;
    padding: 0 2;
    height: 1;
    text-align: right;
    dock: top;
}

Footer {
    background: #181825;
    height: 2;
}

Tabs {
    background: #181825;
    height: 3;
}

Tab {
    background: #1e1e2e;
    text-style: bold;
    padding: 0 1;
    min-height: 1;
}

Tab.active {
    background: #a78bfa;
    color: #0f172a;
    text-style: bold reverse;
}

DataTable {
    background: #1e1e2e;
    border: solid #3b82f6;
}

Button {
    background: transparent;
    color: #3b82f6;
    border: none;
    height: 3;
    min-height: 3;
    min-width: 20;
    padding: 0 1;
    margin: 0;
    content-align: center middle;
}

Button:hover {
    background: #3b82f6;
    color: #ffffff;
    text-style: underline;
}

Button:focus {
    background: #3b82f6;
    color: #ffffff;
    text-style: bold underline reverse;
}

Button.primary {
    background: #a78bfa;
    color: #0f172a;
    border: solid #a78bfa;
    text-style: bold;
}

Button.primary:hover {
    background: #c4b5fd;
}

Button:disabled {
    color: #585b70;
    text-style: none;
}

Select {
    background: #181825;
    border: solid #3b82f6;
    min-height: 1;
    padding: 0 1;
}

Horizontal {
    height: auto;
    margin: 0 0 1 0;
}

Horizontal > * {
    height: auto;
}

Vertical, Horizontal {
    padding: 0 1;
}

#balances-tab, #transfer-tab, #swap-tab, #history-tab {
    padding: 1 2;
}

#balances-title, #transfer-title, #swap-title, #history-title, #confirm-title, #result-title {
    text-style: bold;
    color: #c4b5fd;
    margin-bottom: 1;
    border-bottom: solid #a78bfa;
    padding-bottom: 0;
}

#wallet-info {
    padding: 0 1;
    background: #181825;
    border: solid #3b82f6;
    margin: 0 0 1 0;
}

#balance-table, #history-table {
    min-height: 6;
    margin-bottom: 1;
}

#transfer-helper, #swap-helper, #history-helper {
    color: #94a3b8;
    margin-bottom: 1;
}

#transfer-result, #swap-result {
    min-height: 2;
    margin-top: 1;
    color: #f8fafc;
}

#swap-output {
    background: #181825;
    border: solid #3b82f6;
    padding: 0 1;
    min-height: 3;
    color: #e2e8f0;
}

#history-status {
    color: #a6adc8;
    min-height: 1;
}

#quote-status {
    color: #a6adc8;
    margin-bottom: 1;
}

#quote-details {
    color: #94a3b8;
    margin-bottom: 1;
}

#confirm-fee {
    color: #fbbf24;
}

#confirm-check {
    margin-top: 1;
    margin-bottom: 1;
}

#transfer-actions-row, #swap-actions-row, #balances-actions-row,
#history-actions-row {
    height: 3;
    margin-top: 0;
    margin-bottom: 1;
}

#transfer-actions-row > Button,
#swap-actions-row > Button,
#balances-actions-row > Button,
#history-actions-row > Button {
    width: 20;
    min-width: 20;
}

Label {
    color: #e2e8f0;
}

Input {
    background: #181825;
    border: solid #3b82f6;
    color: #e2e8f0;
    padding: 0 1;
    min-height: 1;
}

Static {
    color: #a6adc8;
}

.hidden {
    display: none;
}

ModalScreen {
    align: center middle;
}

ModalScreen > Vertical {
    border: solid #a78bfa;
    border-title-style: bold;
    background: #181825;
    padding: 1 2;
    width: 90;
    height: auto;
}

#signature-display {
    background: #181825;
    border: solid #3b82f6;
    padding: 0 1;
    margin: 0 0 1 0;
    color: #e2e8f0;
}

#result-detail {
    color: #94a3b8;
    max-height: 10;
    overflow-y: auto;
}
"""
