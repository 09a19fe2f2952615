"""Client session materialization.

The session is the projection handed to the caller after verification. It is
not stored server side; later reads are scoped by the embedded company id.
"""

from portal.types import ClientSession, ClientUser, Company, LoginCode, SessionUser


def build_session(
    login_code: LoginCode,
    user: ClientUser,
    company: Company | None,
    unknown_company_name: str,
) -> ClientSession:
    """Shape a verified login into the payload the caller persists.

    A missing company falls back to `unknown_company_name`; the company id
    always comes from the user row.
    """
    company_name = company.name if company is not None and company.name else unknown_company_name
    return ClientSession(
        id=str(login_code.id),
        user=SessionUser(
            id=str(user.id),
            name=user.name,
            email=user.email,
            company_id=str(user.company_id),
            company_name=company_name,
        ),
    )
