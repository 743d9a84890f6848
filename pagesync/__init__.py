"""
pagesync
--------
Browser actions (click, fill in, choose, check, select, attach) that wait for
a live page to settle instead of failing on the first miss.

    from pagesync.session import open_session

    with open_session() as page:
        page.visit("https://example.com/signup")
        page.fill_in("Email", with_="me@example.com")
        page.click_button("Sign up")
"""

__version__ = "0.1.0"
