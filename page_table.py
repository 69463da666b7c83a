from pagesim_errors import InvariantViolation


class PageDirectory:
    """Maps each resident page to the frame holding it."""

    def __init__(self):
        self.entries = {}  # page -> frame_num

    def contains(self, page):
        return page in self.entries

    def __contains__(self, page):
        return page in self.entries

    def __len__(self):
        return len(self.entries)

    def get_frame(self, page):
        return self.entries.get(page)

    def bind(self, page, frame_num):
        if page in self.entries:
            raise InvariantViolation(
                f"Page {page} is already mapped to frame {self.entries[page]}")
        self.entries[page] = frame_num

    def unbind(self, page):
        if page not in self.entries:
            raise InvariantViolation(f"Page {page} is not resident")
        return self.entries.pop(page)

    def items(self):
        return self.entries.items()
