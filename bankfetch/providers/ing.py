"""ING Australia provider.

Login flow: client number -> accessible keypad -> PIN digit by digit -> accounts summary

ING's banking UI is built from Polymer web components, so tag names are
stable and account data can be read straight off the components.
"""

from decimal import Decimal, InvalidOperation
from pathlib import Path

import structlog
from playwright.async_api import Page

from bankfetch.browser import BrowserSession
from bankfetch.config import Relationship, settings
from bankfetch.models import AccountBalance, ExecutionContext, StatementDocument
from bankfetch.providers.base import (
    LoginError,
    LogoutError,
    NotAuthenticatedError,
    Provider,
)
from bankfetch.secrets import SecretContext

logger = structlog.get_logger(__name__)

LOGIN_URL = "https://www.ing.com.au/securebanking/"

SELECTORS = {
    "client_number": "#cifField",
    "keypad_toggle": '.ing-login-input input[type="image"].accessibleText',
    "keypad_digit": '.ing-accessible-login input[alt="{digit}"]',
    "login_button": '.ing-accessible-login input[alt="Login"]',
    "accounts_summary": "ing-all-accounts-summary",
    "logout_button": "button.uia-logout",
    "logged_out": ".login-button",
    "menu": "ing-menu",
    "menu_finance": 'ing-menu [data-target="#navigation-finance"]',
    "menu_estatements": 'ing-menu [data-target="#navigation-estatements"]',
    "estatements": "ing-estatements",
    "estatement_filters": "ing-estatements-filters",
    "estatement_accounts": "ing-estatements-filters ing-accounts-dropdown-simple",
    "estatement_find": "ing-estatements #findButton",
    "estatement_results": "ing-estatements-results",
    "statement_form": 'input[type=hidden][name=Id][value="{statement_id}"]',
}

# Clicking via page.evaluate: Playwright's native click does not trigger
# the same handlers on these components.
CLICK_JS = """(selector) => {
    const element = document.querySelector(selector);
    if (element != null) { element.click(); }
}"""

SUMMARY_READY_JS = """() => {
    const el = document.querySelector('ing-all-accounts-summary');
    return !!(el && el.__data__ && typeof el.__data__.accountSummaryData !== 'undefined');
}"""

SUMMARY_ACCOUNTS_JS = (
    "el => el.__data__.accountSummaryData.Categories.flatMap(cat => cat.Accounts)"
)

SELECT_ACCOUNT_JS = """(el, accountNumber) => {
    el.selectAccountByNumber(accountNumber);
    el.selectedPeriodIndex = el.periods.length - 1;
}"""

RESULTS_FOR_ACCOUNT_JS = """(accountNumber) => {
    const el = document.querySelector('ing-estatements-results');
    return !!(el && el.__data__ && el.__data__.accountNumber === accountNumber);
}"""


class IngProvider(Provider):
    """Fetches balances and e-statements from ING Australia.

    Relationship options:
        download_statements: Save each statement PDF to
            ``settings.download_dir`` instead of only listing it.

    Secrets requested at login: ``username`` (client number) and
    ``password`` (PIN).
    """

    provider_id = "ing"
    institution = "ING"
    supports_documents = True

    def __init__(self, context: ExecutionContext, relationship: Relationship) -> None:
        super().__init__(context, relationship)
        self._session: BrowserSession | None = None
        self._page: Page | None = None
        self._authenticated = False

    async def login(self, secrets: SecretContext) -> None:
        """Log in through the accessible keypad.

        Raises:
            LoginError: If any step fails; the browser is closed first.
        """
        session = self._session = BrowserSession(
            headless=not self.context.debug,
            slow_mo_ms=settings.browser_slow_mo_ms,
            timeout_ms=settings.browser_timeout_ms,
        )

        try:
            await session.start()
            page = self._page = await session.new_page()

            username = await secrets.retrieve("username")
            password = await secrets.retrieve("password")

            await page.goto(LOGIN_URL)
            await page.wait_for_selector(SELECTORS["client_number"])
            self.debug_step("login", 1)

            # Tab out to trigger client-side validation of the client number
            await page.type(SELECTORS["client_number"], username)
            await page.keyboard.press("Tab")
            self.debug_step("login", 2)

            await page.evaluate(CLICK_JS, SELECTORS["keypad_toggle"])
            await page.wait_for_selector(SELECTORS["keypad_digit"].format(digit="1"))
            self.debug_step("login", 3)

            for digit in password:
                await page.evaluate(CLICK_JS, SELECTORS["keypad_digit"].format(digit=digit))
            self.debug_step("login", 4)

            await page.evaluate(CLICK_JS, SELECTORS["login_button"])
            self.debug_step("login", 5)

            await page.wait_for_selector(SELECTORS["accounts_summary"])
            self._authenticated = True
            self.debug_step("login", 6)

        except Exception as e:
            await self._release()
            raise LoginError(f"ING login failed: {e}") from e

        logger.info("ing_login_successful", relationship=self.relationship.name)

    async def get_balances(self) -> list[AccountBalance]:
        page = self._require_page()
        self.debug_step("get_balances", 0)

        await page.wait_for_selector(SELECTORS["accounts_summary"])
        await page.wait_for_function(SUMMARY_READY_JS)
        self.debug_step("get_balances", 1)

        accounts = await page.eval_on_selector(
            SELECTORS["accounts_summary"], SUMMARY_ACCOUNTS_JS
        )

        balances = []
        for i, account in enumerate(accounts):
            try:
                balances.append(
                    AccountBalance(
                        institution=self.institution,
                        account_name=str(account["AccountName"]),
                        account_number=str(account["AccountNumber"]),
                        balance=Decimal(str(account["CurrentBalance"])),
                    )
                )
            except (KeyError, TypeError, InvalidOperation) as e:
                logger.warning("ing_account_parse_error", account_index=i, error=str(e))
                continue

        self.debug_step("get_balances", 2)
        return balances

    async def get_documents(self) -> list[StatementDocument]:
        page = self._require_page()
        self.debug_step("get_documents", 0)

        await page.wait_for_selector(SELECTORS["menu"])
        await page.click(SELECTORS["menu_finance"])
        await page.click(SELECTORS["menu_estatements"])
        self.debug_step("get_documents", 1)

        await page.wait_for_selector(SELECTORS["estatements"])
        await page.wait_for_selector(SELECTORS["estatement_filters"])
        await page.wait_for_selector(SELECTORS["estatement_accounts"])
        self.debug_step("get_documents", 2)

        accounts = await page.eval_on_selector(
            SELECTORS["estatement_filters"], "el => el.accounts"
        )

        documents: list[StatementDocument] = []
        for account in accounts:
            documents.extend(
                await self._get_documents_for_account(page, str(account["AccountNumber"]))
            )

        self.debug_step("get_documents", 3)
        return documents

    async def logout(self) -> None:
        """Log out through the UI and close the browser.

        Raises:
            LogoutError: If the UI logout fails. The browser is closed anyway.
        """
        if self._session is None:
            logger.debug("ing_logout_without_session", relationship=self.relationship.name)
            return

        page = self._page
        authenticated = self._authenticated
        try:
            if page is not None and authenticated:
                await page.evaluate(CLICK_JS, SELECTORS["logout_button"])
                self.debug_step("logout", 1)
                await page.wait_for_selector(SELECTORS["logged_out"])
                self.debug_step("logout", 2)
        except Exception as e:
            raise LogoutError(f"ING logout did not complete: {e}") from e
        finally:
            await self._release()

    async def _get_documents_for_account(
        self, page: Page, account_number: str
    ) -> list[StatementDocument]:
        stage = f"get_documents:{account_number}"

        # Longest period available for this account
        await page.eval_on_selector(
            SELECTORS["estatement_filters"], SELECT_ACCOUNT_JS, account_number
        )
        await page.click(SELECTORS["estatement_find"])
        self.debug_step(stage, 1)

        await page.wait_for_function(RESULTS_FOR_ACCOUNT_JS, arg=account_number)
        statements = await page.eval_on_selector(
            SELECTORS["estatement_results"], "el => el.data.Items"
        )
        self.debug_step(stage, 2)

        download = bool(self.relationship.options.get("download_statements", False))
        documents = []
        for statement in statements:
            document = StatementDocument(
                institution=self.institution,
                account_number=account_number,
                statement_id=str(statement["Id"]),
                end_date=str(statement["EndDate"]),
            )
            if download:
                document = await self._download_statement(page, document)
            logger.info(
                "statement_found",
                relationship=self.relationship.name,
                filename=document.filename,
                downloaded=document.path is not None,
            )
            documents.append(document)

        return documents

    async def _download_statement(
        self, page: Page, document: StatementDocument
    ) -> StatementDocument:
        target_dir = Path(settings.download_dir)
        target = target_dir / document.filename
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            form_input = SELECTORS["statement_form"].format(statement_id=document.statement_id)
            async with page.expect_download() as download_info:
                await page.eval_on_selector(form_input, "el => el.form.submit()")
            download = await download_info.value
            await download.save_as(target)
        except Exception as e:
            logger.warning(
                "statement_download_failed",
                relationship=self.relationship.name,
                filename=document.filename,
                error=str(e),
            )
            return document

        return document.model_copy(update={"path": str(target)})

    def _require_page(self) -> Page:
        if self._page is None or not self._authenticated:
            raise NotAuthenticatedError("ING session is not logged in")
        return self._page

    async def _release(self) -> None:
        session = self._session
        self._session = None
        self._page = None
        self._authenticated = False
        if session is not None:
            await session.close()

    def __repr__(self) -> str:
        return f"IngProvider(relationship={self.relationship.name!r})"
