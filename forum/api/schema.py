# forum/api/schema.py
"""
GraphQL SDL exported as a Python string named type_defs.
The application imports this module and expects type_defs to be available.
Field and argument names are camelCase here and snake_case in resolvers.
"""

type_defs = """
schema {
  query: Query
  mutation: Mutation
}

enum Role {
  USER
  ADMIN
}

type User {
  id: ID!
  email: String
  firstname: String
  lastname: String
  profileImg: String
  role: Role
  createdAt: String
  updatedAt: String
  userPosts: [Post!]!
  upVotedPosts: [Post!]!
}

type Post {
  id: ID!
  title: String!
  description: String
  category: String
  status: String
  upVotes: Int!
  createdAt: String
  updatedAt: String
  authorId: ID!
  author: User
  comments: [Comment!]!
  commentCount: Int!
  userUpVoteList: [User!]!
}

type Comment {
  id: ID!
  content: String!
  createdAt: String
  updatedAt: String
  authorId: ID!
  postId: ID!
  author: User
  post: Post
  replies: [Reply!]!
}

type Reply {
  id: ID!
  content: String!
  createdAt: String
  updatedAt: String
  authorId: ID!
  commentId: ID!
  author: User
  comment: Comment
}

type Query {
  currentUser: User
  user(userId: ID!): User
  post(postId: ID!): Post
  posts: [Post!]!
  filteredPosts(filter: String, sort: String): [Post!]!
  postsByStatus(status: String!): [Post!]!
  postsCount(filter: String): Int!
  comment(commentId: ID!): Comment
}

type Mutation {
  addPost(title: String!, description: String, category: String, status: String): Post!
  updatePost(postId: ID!, title: String, description: String, category: String, status: String): Post!
  deletePost(postId: ID!): Post!
  toggleUpVote(postId: ID!): Post!
  addComment(postId: ID!, content: String!): Comment!
  addReply(commentId: ID!, content: String!): Reply!
}
"""
